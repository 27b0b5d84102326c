"""Async subprocess execution for external command-line tools.

Commands are always run from an argument list (no shell), so values taken from
webhook payloads such as PR titles and bodies reach the tool verbatim.

Example:
    >>> result = await run_command("know", "add", "PR #15: Add auth", timeout=60)
    >>> if not result.ok:
    ...     print(result.stderr)
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path


@dataclass
class CommandResult:
    """Outcome of a finished subprocess."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    *args: str,
    cwd: Path | str | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a command without shell interpolation and capture its output.

    A non-zero exit status is returned, not raised; callers decide whether it
    matters.

    Args:
        *args: Executable followed by its arguments
        cwd: Working directory, defaults to the current one
        timeout: Seconds to wait before killing the process

    Returns:
        CommandResult with decoded stdout/stderr.

    Raises:
        TimeoutError: If ``timeout`` elapsed; the process is killed first.
        FileNotFoundError: If the executable does not exist.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        process.kill()
        await process.wait()
        raise

    return CommandResult(
        args=tuple(args),
        returncode=process.returncode or 0,
        stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
    )
