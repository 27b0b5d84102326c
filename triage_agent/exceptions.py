"""Custom exception hierarchy for the triage agent.

Exception Hierarchy:
    TriageAgentError (base)
    ├── ConfigurationError
    ├── ExternalServiceError
    │   ├── TransientRemoteError
    │   └── PermanentRemoteError
    ├── RetriesExhaustedError
    ├── InvalidGenerationError
    ├── MalformedEnvelopeError
    └── TransportError

The resilient executor retries every failure the same way; the remote error
subclasses exist so that logs and callers can tell a flaky upstream from a
rejected request.

Example Usage:
    >>> from triage_agent.exceptions import ConfigurationError
    >>> try:
    ...     load_config(path)
    ... except FileNotFoundError as e:
    ...     raise ConfigurationError(f"Config file not found: {path}") from e
"""


class TriageAgentError(Exception):
    """Base exception for all triage agent errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(TriageAgentError):
    """Configuration file is missing, unreadable or fails validation."""

    pass


class ExternalServiceError(TriageAgentError):
    """A call to the source-hosting API or the LLM endpoint failed.

    Attributes:
        status_code: HTTP status code, when a response was received
        response_text: Response body text, when a response was received
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.response_text = response_text

        full_message = message
        if status_code:
            full_message = f"{message} (HTTP {status_code})"

        super().__init__(full_message)
        self.message = message


class TransientRemoteError(ExternalServiceError):
    """Network failure, timeout, 5xx or 429 from a remote service."""

    pass


class PermanentRemoteError(ExternalServiceError):
    """Validation-class (4xx) rejection from a remote service."""

    pass


class RetriesExhaustedError(TriageAgentError):
    """Every attempt of a resilient operation failed.

    The last underlying failure is kept on ``last_error`` and chained as
    ``__cause__``; its message is embedded so reports stay readable.

    Attributes:
        label: Operation label passed to the executor
        attempts: Number of attempts that were made
        last_error: Exception raised by the final attempt
    """

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")


class InvalidGenerationError(TriageAgentError):
    """LLM output does not satisfy the structure the caller requires."""

    pass


class MalformedEnvelopeError(TriageAgentError):
    """A raw queue message could not be parsed into an event envelope."""

    pass


class TransportError(TriageAgentError):
    """The event queue transport lost its connection."""

    pass


def remote_error_for_status(
    message: str,
    status_code: int,
    response_text: str | None = None,
) -> ExternalServiceError:
    """Build the remote error matching an HTTP failure status.

    5xx and 429 are transient; every other 4xx is permanent.
    """
    error_class = TransientRemoteError if status_code >= 500 or status_code == 429 else PermanentRemoteError
    return error_class(message, status_code=status_code, response_text=response_text)
