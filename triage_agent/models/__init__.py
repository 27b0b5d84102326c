"""Data models for the triage agent.

Key Models:
    - EventEnvelope: Event delivered by the queue transport
    - Issue / PullRequest / ChangedFile: Projections of remote resources
    - FileSnapshot: File content plus its version token
    - FixPlan / FileChange: Structured fix produced by the LLM
    - RetryContext: State of one resilient executor invocation
"""

from triage_agent.models.domain import (
    ChangedFile,
    CreatedPullRequest,
    EventEnvelope,
    FileSnapshot,
    Issue,
    PullRequest,
    RetryContext,
)
from triage_agent.models.fix import FileChange, FileSelection, FixPlan

__all__ = [
    "ChangedFile",
    "CreatedPullRequest",
    "EventEnvelope",
    "FileChange",
    "FileSelection",
    "FileSnapshot",
    "FixPlan",
    "Issue",
    "PullRequest",
    "RetryContext",
]
