"""Resilient execution of outbound operations.

Every network call the agent makes (source-hosting API and LLM endpoint) is
wrapped by :class:`ResilientExecutor`, which retries failed attempts with
exponential backoff and gives up with :class:`RetriesExhaustedError`.

Backoff Formula:
    delay = base_delay * 2 ** (attempt - 1)
    For base_delay=1.0 and three attempts: 1s, 2s (no delay after the last attempt).

The wait between attempts is an injectable async callable. It defaults to
``asyncio.sleep``; tests pass a recorder so backoff can be asserted without
waiting. Swapping it never changes attempt counts or delay values.

Example:
    >>> executor = ResilientExecutor()
    >>> issue = await executor.execute(lambda: client.get("/repos/o/r/issues/1"), "get_issue")
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from triage_agent.exceptions import RetriesExhaustedError
from triage_agent.models.domain import RetryContext

log = structlog.get_logger(__name__)

T = TypeVar("T")

DelayFunction = Callable[[float], Awaitable[None]]


class ResilientExecutor:
    """Retries an async operation with exponential backoff.

    All exceptions are retried identically; the executor does not try to
    classify failures as retryable or not.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        delay: DelayFunction | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            max_attempts: Total attempts per operation, including the first
            base_delay: Delay before the first retry, doubled for each later retry
            delay: Async wait function; defaults to ``asyncio.sleep``
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.delay = delay or asyncio.sleep

    async def execute(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        """Run ``operation`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            label: Name used in logs and in the exhaustion error

        Returns:
            The operation's result, unchanged.

        Raises:
            RetriesExhaustedError: When every attempt failed. The final
                attempt's exception is available as ``last_error``.
        """
        context = RetryContext(
            operation_label=label,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
        )

        while True:
            try:
                return await operation()
            except Exception as e:
                if context.is_final:
                    log.error(
                        "retry_exhausted",
                        label=label,
                        attempts=context.attempt,
                        error=str(e),
                    )
                    raise RetriesExhaustedError(label, context.attempt, e) from e

                log.warning(
                    "retry_attempt",
                    label=label,
                    attempt=context.attempt,
                    max_attempts=context.max_attempts,
                    delay=context.delay,
                    error=str(e),
                )
                await self.delay(context.delay)
                context.attempt += 1
