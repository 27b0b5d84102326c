"""Event routing, triage handlers, the listener loop and the fix pipeline.

Key Components:
    - EventRouter: Resolves (event type, action) envelopes to handlers
    - TriageHandlers: Plan/summary/knowledge handlers
    - Listener: Long-running queue consumer
    - FixPipeline: Issue -> branch -> commits -> pull request
"""

from triage_agent.engine.fix_pipeline import FixPipeline, FixResult
from triage_agent.engine.handlers import TriageHandlers
from triage_agent.engine.listener import Listener, parse_envelope
from triage_agent.engine.router import ROUTES, EventRouter, Route

__all__ = [
    "ROUTES",
    "EventRouter",
    "FixPipeline",
    "FixResult",
    "Listener",
    "Route",
    "TriageHandlers",
    "parse_envelope",
]
