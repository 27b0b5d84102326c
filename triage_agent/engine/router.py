"""
Event routing for queued webhook envelopes.

Routing is data: ``ROUTES`` maps ``(event_type, action)`` to an ordered list
of candidate routes, each naming a handler method and an optional predicate.
The first route whose predicate matches wins. Supporting a new event
combination means adding an entry, not touching dispatch logic.

The router performs no I/O and never raises for unknown input; envelopes it
cannot route are dropped by returning ``None``.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from triage_agent.engine.handlers import Handler
from triage_agent.models.domain import EventEnvelope

log = structlog.get_logger(__name__)


def is_merged(envelope: EventEnvelope) -> bool:
    pr = envelope.payload.get("pull_request")
    return isinstance(pr, Mapping) and pr.get("merged") is True


@dataclass(frozen=True)
class Route:
    """Binding of an envelope shape to a handler method name."""

    handler: str
    when: Callable[[EventEnvelope], bool] | None = None

    def matches(self, envelope: EventEnvelope) -> bool:
        return self.when is None or self.when(envelope)


ROUTES: dict[tuple[str, str], tuple[Route, ...]] = {
    ("issues", "opened"): (Route("handle_issue_opened"),),
    ("issues", "labeled"): (Route("handle_issue_labeled"),),
    ("pull_request", "opened"): (Route("handle_pull_request_opened"),),
    ("pull_request", "closed"): (
        Route("handle_pull_request_closed", when=is_merged),
        Route("skip_unmerged_pull_request"),
    ),
}


class EventRouter:
    """Resolves envelopes to handler coroutines."""

    def __init__(
        self,
        handlers: Any,
        routes: Mapping[tuple[str, str], Sequence[Route]] | None = None,
    ):
        """Initialize router.

        Args:
            handlers: Object exposing the handler methods named in the routes
            routes: Routing table, defaults to ``ROUTES``
        """
        self.handlers = handlers
        self.routes = routes if routes is not None else ROUTES

    def should_process(self, envelope: EventEnvelope | None) -> bool:
        """Whether the envelope's (event type, action) pair is routed at all."""
        if envelope is None or not isinstance(envelope.event_type, str) or envelope.action is None:
            return False
        return (envelope.event_type, envelope.action) in self.routes

    def resolve_route(self, envelope: EventEnvelope | None) -> Route | None:
        """Return the first matching route for ``envelope``."""
        if not self.should_process(envelope):
            return None

        for route in self.routes[(envelope.event_type, envelope.action)]:
            if route.matches(envelope):
                return route

        log.debug("no_route_matched", event_type=envelope.event_type, action=envelope.action)
        return None

    def resolve_handler(self, envelope: EventEnvelope | None) -> Handler | None:
        """Return the handler for ``envelope``, or None if it is not routed."""
        route = self.resolve_route(envelope)
        if route is None:
            return None
        return getattr(self.handlers, route.handler)
