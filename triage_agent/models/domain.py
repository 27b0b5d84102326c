"""
Domain models for the triage agent.

These dataclasses are read-only projections of remote resources and of the
event envelopes delivered by the queue. Nothing here is cached or persisted;
the remote repository is the single source of truth and every value is
fetched fresh for the operation that needs it.

Example:
    Building an issue projection from a webhook payload::

        issue = Issue.from_api(payload["issue"])
        print(issue.number, issue.title)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class EventEnvelope:
    """A unit of incoming event data delivered by the queue transport.

    The payload mirrors the source-hosting webhook body, e.g.::

        {"action": "opened", "repository": {"full_name": "o/r"}, "issue": {...}}
    """

    event_type: str
    """Webhook event name such as ``issues`` or ``pull_request``."""

    payload: Mapping[str, Any] = field(default_factory=dict)
    """Raw webhook payload. Wrapped read-only on construction."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @property
    def action(self) -> str | None:
        """Webhook action (``opened``, ``labeled``, ``closed``...), or None if absent or not a string."""
        action = self.payload.get("action")
        return action if isinstance(action, str) else None

    @property
    def repository(self) -> str | None:
        """Repository full name, ``owner/name``, or None if the payload lacks a usable one."""
        repo = self.payload.get("repository")
        if not isinstance(repo, Mapping):
            return None
        full_name = repo.get("full_name")
        return full_name if isinstance(full_name, str) else None


@dataclass
class Issue:
    """Read-only projection of a remote issue."""

    number: int
    title: str
    body: str | None = None
    html_url: str | None = None
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Issue":
        return cls(
            number=data["number"],
            title=data.get("title", ""),
            body=data.get("body"),
            html_url=data.get("html_url"),
            labels=[label["name"] for label in data.get("labels") or [] if isinstance(label, dict)],
        )


@dataclass
class PullRequest:
    """Read-only projection of a remote pull request.

    ``head_ref`` and ``author_login`` are optional because partial webhook
    payloads may omit the ``head`` or ``user`` objects.
    """

    number: int
    title: str
    body: str | None = None
    merged: bool = False
    merged_at: str | None = None
    head_ref: str | None = None
    author_login: str | None = None
    html_url: str | None = None
    changed_files: int | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "PullRequest":
        head = data.get("head") or {}
        user = data.get("user") or {}
        return cls(
            number=data["number"],
            title=data.get("title", ""),
            body=data.get("body"),
            merged=bool(data.get("merged", False)),
            merged_at=data.get("merged_at"),
            head_ref=head.get("ref"),
            author_login=user.get("login"),
            html_url=data.get("html_url"),
            changed_files=data.get("changed_files"),
        )


@dataclass
class ChangedFile:
    """One entry of a pull request's changed-file listing."""

    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    patch: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ChangedFile":
        return cls(
            filename=data["filename"],
            status=data.get("status", "modified"),
            additions=data.get("additions", 0),
            deletions=data.get("deletions", 0),
            patch=data.get("patch"),
        )


@dataclass
class FileSnapshot:
    """File content at a specific remote revision.

    ``sha`` is the version token the contents API requires to overwrite the
    file. A change for a path with no snapshot is committed without one,
    which the remote treats as file creation.
    """

    path: str
    content: str
    sha: str


@dataclass
class CreatedPullRequest:
    """Reference to a pull request the agent opened."""

    number: int
    html_url: str


@dataclass
class RetryContext:
    """State of one resilient executor invocation."""

    operation_label: str
    attempt: int = 1
    max_attempts: int = 3
    base_delay: float = 1.0

    @property
    def delay(self) -> float:
        """Backoff before the next attempt: ``base_delay * 2^(attempt-1)``."""
        return self.base_delay * 2 ** (self.attempt - 1)

    @property
    def is_final(self) -> bool:
        return self.attempt >= self.max_attempts
