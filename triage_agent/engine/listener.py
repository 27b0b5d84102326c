"""
Listener loop: the long-running consumer of queued event envelopes.

Messages are processed strictly one at a time in delivery order. A malformed,
unrouted or failing envelope never stops the loop; only ``stop()`` or the
optional ``max_messages`` bound does.
"""

import asyncio
import json

import structlog

from triage_agent.engine.router import EventRouter
from triage_agent.exceptions import MalformedEnvelopeError, TransportError
from triage_agent.models.domain import EventEnvelope
from triage_agent.transport.base import EventTransport
from triage_agent.utils.retry import DelayFunction

log = structlog.get_logger(__name__)


def parse_envelope(raw: str | bytes) -> EventEnvelope:
    """Parse a raw queue message of the form ``{"eventType": ..., "payload": {...}}``.

    Raises:
        MalformedEnvelopeError: If the message is not JSON or lacks the envelope fields.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedEnvelopeError(f"Message is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedEnvelopeError("Envelope must be a JSON object")

    event_type = data.get("eventType")
    payload = data.get("payload")
    if not isinstance(event_type, str) or not isinstance(payload, dict):
        raise MalformedEnvelopeError("Envelope requires a string eventType and an object payload")

    return EventEnvelope(event_type=event_type, payload=payload)


class Listener:
    """Pulls envelopes from a transport and dispatches them through the router."""

    def __init__(
        self,
        transport: EventTransport,
        router: EventRouter,
        max_messages: int | None = None,
        delay: DelayFunction | None = None,
        reconnect_delay: float = 5.0,
    ):
        """Initialize listener.

        Args:
            transport: Queue transport to receive raw messages from
            router: Router resolving envelopes to handlers
            max_messages: Stop after this many received messages (None = run until stopped)
            delay: Async wait used before reconnecting; defaults to ``asyncio.sleep``
            reconnect_delay: Seconds to wait before reconnecting a lost transport
        """
        self.transport = transport
        self.router = router
        self.max_messages = max_messages
        self.delay = delay or asyncio.sleep
        self.reconnect_delay = reconnect_delay
        self.running = False
        self.received = 0

    def stop(self) -> None:
        self.running = False

    def _bound_reached(self) -> bool:
        return self.max_messages is not None and self.received >= self.max_messages

    async def run(self) -> int:
        """Consume messages until stopped or the message bound is reached.

        Every message taken off the queue counts toward ``max_messages``,
        including malformed and skipped ones. Idle polls do not.

        Returns:
            Number of messages received.
        """
        self.running = True
        log.info("listener_started", max_messages=self.max_messages)

        try:
            while self.running and not self._bound_reached():
                try:
                    raw = await self.transport.receive()
                except TransportError as e:
                    await self._reconnect(e)
                    continue

                if raw is None:
                    continue

                self.received += 1
                await self.handle_message(raw)
        finally:
            self.running = False

        log.info("listener_stopped", received=self.received)
        return self.received

    async def _reconnect(self, error: TransportError) -> None:
        log.warning("transport_disconnected", error=error.message, delay=self.reconnect_delay)
        await self.delay(self.reconnect_delay)
        try:
            await self.transport.reconnect()
        except TransportError as e:
            log.error("transport_reconnect_failed", error=e.message)

    async def handle_message(self, raw: str | bytes) -> bool:
        """Parse, route and handle one raw message.

        Returns:
            True if a handler ran to completion.
        """
        try:
            envelope = parse_envelope(raw)
        except MalformedEnvelopeError as e:
            log.debug("malformed_envelope_skipped", error=e.message)
            return False

        if not self.router.should_process(envelope):
            log.debug("event_skipped", event_type=envelope.event_type, action=envelope.action)
            return False

        handler = self.router.resolve_handler(envelope)
        if handler is None:
            return False

        try:
            await handler(envelope)
        except Exception as e:
            log.error(
                "Error processing event",
                event_type=envelope.event_type,
                action=envelope.action,
                repo=envelope.repository,
                error=str(e),
                exc_info=True,
            )
            return False

        return True
