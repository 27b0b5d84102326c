"""Recording merged pull requests in the external knowledge tool.

The ``know`` CLI indexes knowledge entries; on every merged PR the agent adds
one entry describing the change. The tool runs with ``--no-git`` so it never
commits on its own.
"""

import structlog

from triage_agent.models.domain import PullRequest
from triage_agent.utils.async_subprocess import run_command

log = structlog.get_logger(__name__)

NO_DESCRIPTION = "No description provided."
UNKNOWN = "unknown"
MERGE_TAG = "pr-merge"


class KnowledgeRecorder:
    """Invokes the knowledge CLI for merged pull requests."""

    def __init__(
        self,
        executable: str = "know",
        category: str = "architecture",
        timeout: float = 60.0,
    ):
        self.executable = executable
        self.category = category
        self.timeout = timeout

    def build_command(self, repo: str, pr: PullRequest) -> list[str]:
        """Build the argument list for one knowledge entry.

        Missing author or branch fall back to ``unknown``; ``--source`` is
        left out when the PR has no URL.
        """
        args = [
            self.executable,
            "add",
            f"PR #{pr.number}: {pr.title}",
            "--category",
            self.category,
            "--author",
            pr.author_login or UNKNOWN,
            "--branch",
            pr.head_ref or UNKNOWN,
        ]
        if pr.html_url:
            args += ["--source", pr.html_url]
        args += [
            "--repo",
            repo,
            "--tags",
            ",".join([MERGE_TAG, repo]),
            "--content",
            pr.body or NO_DESCRIPTION,
            "--no-git",
        ]
        return args

    async def record(self, repo: str, pr: PullRequest) -> bool:
        """Add a knowledge entry for a merged PR.

        Failures (non-zero exit, missing executable, timeout) are logged and
        reported through the return value only.

        Returns:
            True if the tool exited successfully.
        """
        args = self.build_command(repo, pr)
        log.info("knowledge_record_start", repo=repo, pr=pr.number)

        try:
            result = await run_command(*args, timeout=self.timeout)
        except (OSError, TimeoutError) as e:
            log.error("knowledge_record_failed", repo=repo, pr=pr.number, error=str(e))
            return False

        if not result.ok:
            log.error(
                "knowledge_record_failed",
                repo=repo,
                pr=pr.number,
                exit_code=result.returncode,
                stderr=result.stderr.strip(),
            )
            return False

        log.info("knowledge_recorded", repo=repo, pr=pr.number)
        return True
