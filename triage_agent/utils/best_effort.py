"""Fire-and-forget side actions.

Posting a status comment or recording knowledge must never replace the
result or error the caller is actually reporting. ``best_effort`` runs such
an action, logs its failure and discards it.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

log = structlog.get_logger(__name__)


async def best_effort(action: Callable[[], Awaitable[Any]], label: str) -> bool:
    """Await ``action``, swallowing and logging any exception.

    Args:
        action: Zero-argument callable returning the awaitable to run
        label: Name of the side action for the log entry

    Returns:
        True if the action completed, False if it raised.
    """
    try:
        await action()
    except Exception as e:
        log.warning("best_effort_action_failed", label=label, error=str(e))
        return False
    return True
