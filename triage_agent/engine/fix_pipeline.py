"""Fix-generation pipeline - turns an issue into a pull request.

Stages run strictly in sequence:

1. Fetch the issue and the repository tree
2. Ask the LLM to select relevant files (JSON array, at most 5 paths)
3. Fetch the selected files with their version tokens
4. Generate a structured ``FixPlan``, regenerating up to three times
5. Create the fix branch and commit each change
6. Open a pull request that closes the issue
7. Comment on the issue with the PR link

Any failure in stages 1-6 is reported on the issue and returned as a failed
``FixResult``. Status comments are best-effort and never mask the outcome.
"""

import json
from dataclasses import dataclass

import structlog

from triage_agent.exceptions import InvalidGenerationError
from triage_agent.models.domain import CreatedPullRequest, FileSnapshot, Issue
from triage_agent.models.fix import FileSelection, FixPlan
from triage_agent.providers.base import LLMProvider
from triage_agent.providers.github_rest import GitHubRestProvider
from triage_agent.providers.openai_compatible import strip_code_fence
from triage_agent.utils.best_effort import best_effort

log = structlog.get_logger(__name__)

MAX_SELECTED_FILES = 5

FILE_SELECTION_SYSTEM_PROMPT = f"""You are a senior software engineer. Given a GitHub issue and a repository file tree,
select the files most likely relevant to fixing the issue. Return ONLY a JSON array of
file paths (max {MAX_SELECTED_FILES}). No explanation, no markdown, just the JSON array."""


@dataclass
class FixResult:
    """Outcome of one pipeline run."""

    success: bool
    pull_request: CreatedPullRequest | None = None
    error: str | None = None


def build_system_prompt(tree: list[str], snapshots: dict[str, FileSnapshot], repo: str) -> str:
    """Embed the project structure and selected file contents in the fix prompt."""
    file_list = "\n".join(f"- {path}" for path in tree)
    contents = "".join(f"\n--- {path} ---\n{snapshot.content}\n" for path, snapshot in snapshots.items())

    return f"""You are a senior software engineer generating a code fix for a GitHub issue.
Repository: {repo}

Project structure:
{file_list}

File contents:
{contents}

Generate a fix that:
- Modifies only the files necessary
- Returns complete file contents (not diffs)
- Uses a descriptive branch name like fix/issue-42-short-description
- Includes clear commit messages"""


class FixPipeline:
    """On-demand pipeline generating and proposing a fix for one issue."""

    def __init__(
        self,
        git: GitHubRestProvider,
        llm: LLMProvider,
        base_branch: str = "main",
        max_generation_attempts: int = 3,
    ):
        """Initialize pipeline.

        Args:
            git: Repository gateway
            llm: LLM used for file selection and fix generation
            base_branch: Branch the fix is based on and merged into
            max_generation_attempts: Fix generations tried before giving up
        """
        if max_generation_attempts < 1:
            raise ValueError("max_generation_attempts must be at least 1")
        self.git = git
        self.llm = llm
        self.base_branch = base_branch
        self.max_generation_attempts = max_generation_attempts

    async def run(self, repo: str, issue_number: int) -> FixResult:
        """Attempt to fix ``issue_number`` in ``repo`` and open a PR.

        Returns:
            FixResult; ``success`` is False when any stage failed, in which
            case a failure comment was attempted on the issue.
        """
        log.info("fix_attempt_start", repo=repo, issue=issue_number)

        try:
            pr = await self._propose_fix(repo, issue_number)
        except Exception as e:
            log.error("fix_attempt_failed", repo=repo, issue=issue_number, error=str(e), exc_info=True)
            await best_effort(
                lambda: self.git.post_comment(repo, issue_number, f"Fix attempt failed: {e}"),
                "fix_failure_comment",
            )
            return FixResult(success=False, error=str(e))

        await best_effort(
            lambda: self.git.post_comment(
                repo,
                issue_number,
                f"I've opened a PR with a proposed fix: {pr.html_url}",
            ),
            "fix_success_comment",
        )

        log.info("fix_attempt_complete", repo=repo, issue=issue_number, pr=pr.html_url)
        return FixResult(success=True, pull_request=pr)

    async def _propose_fix(self, repo: str, issue_number: int) -> CreatedPullRequest:
        issue = await self.git.get_issue(repo, issue_number)
        tree = await self.git.get_repo_tree(repo, self.base_branch)

        selected_paths = await self.select_files(issue, tree)
        log.info("files_selected", issue=issue_number, paths=selected_paths)

        snapshots: dict[str, FileSnapshot] = {}
        for path in selected_paths:
            snapshots[path] = await self.git.get_file_content(repo, path, self.base_branch)

        fix = await self.generate_fix(issue, tree, snapshots, repo)
        log.info("fix_generated", issue=issue_number, branch=fix.branch_name, changes=len(fix.changes))

        await self.git.create_branch(repo, fix.branch_name, self.base_branch)

        for change in fix.changes:
            snapshot = snapshots.get(change.path)
            await self.git.commit_file(
                repo,
                change.path,
                change.content,
                change.commit_message,
                fix.branch_name,
                snapshot.sha if snapshot else None,
            )

        return await self.git.create_pull_request(
            repo,
            fix.branch_name,
            self.base_branch,
            f"Fix #{issue_number}: {issue.title}",
            f"## Summary\n\n{fix.summary}\n\nCloses #{issue_number}",
        )

    async def select_files(self, issue: Issue, tree: list[str]) -> list[str]:
        """Ask the LLM which files are relevant to the issue.

        Returned paths are used as-is; a path missing from the tree surfaces
        later as a failed content fetch.

        Raises:
            InvalidGenerationError: If the reply is not a JSON array of strings.
        """
        file_list = "\n".join(tree)
        response = await self.llm.complete(
            FILE_SELECTION_SYSTEM_PROMPT,
            f"Issue: {issue.title}\n\n{issue.body or ''}\n\nFiles:\n{file_list}",
        )

        try:
            return FileSelection(paths=json.loads(strip_code_fence(response))).paths
        except ValueError as e:
            raise InvalidGenerationError(f"File selection is not a JSON array of paths: {e}") from e

    async def generate_fix(
        self,
        issue: Issue,
        tree: list[str],
        snapshots: dict[str, FileSnapshot],
        repo: str,
    ) -> FixPlan:
        """Request a structured fix, regenerating on any failure.

        A plan with no changes counts as a failed attempt. After the last
        attempt its error is raised unchanged.
        """
        system_prompt = build_system_prompt(tree, snapshots, repo)
        prompt = f"Fix this issue:\n\nTitle: {issue.title}\n\n{issue.body or ''}"

        attempt = 1
        while True:
            try:
                fix = await self.llm.complete_structured(system_prompt, prompt, FixPlan)
                if not fix.changes:
                    raise InvalidGenerationError("Generated fix contains no changes")
                return fix
            except Exception as e:
                log.warning(
                    "fix_generation_attempt_failed",
                    issue=issue.number,
                    attempt=attempt,
                    max_attempts=self.max_generation_attempts,
                    error=str(e),
                )
                if attempt >= self.max_generation_attempts:
                    raise
                attempt += 1
