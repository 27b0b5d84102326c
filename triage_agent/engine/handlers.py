"""Triage handlers - one coroutine per routed (event type, action) combination.

Issue handlers generate a triage plan and post it as a comment. The PR-opened
handler posts a summary of the change. The PR-closed handler records merged
PRs in the knowledge tool. Errors propagate to the listener, which logs them
and moves on to the next envelope.
"""

from collections.abc import Awaitable, Callable

import structlog

from triage_agent.knowledge import KnowledgeRecorder
from triage_agent.models.domain import ChangedFile, EventEnvelope, Issue, PullRequest
from triage_agent.providers.base import LLMProvider
from triage_agent.providers.github_rest import GitHubRestProvider

log = structlog.get_logger(__name__)

Handler = Callable[[EventEnvelope], Awaitable[None]]

TRIAGE_SYSTEM_PROMPT = """You are a senior software engineer triaging GitHub issues.
Read the issue and write a short implementation plan in markdown:

## Summary
One or two sentences restating the problem.

## Plan
Numbered steps a developer can follow.

## Open Questions
Anything that must be clarified before work starts (or "None").

Be concrete and conservative. Do not invent requirements the issue does not state."""

PR_SUMMARY_SYSTEM_PROMPT = """You are a senior software engineer reviewing a pull request.
Write a concise markdown summary for reviewers: what changes, why, and anything
that deserves a careful look. Use at most three short sections."""

TRIAGE_HEADER = "## 🤖 Triage Agent"
PR_SUMMARY_HEADER = "## 🤖 PR Summary"


def format_issue_prompt(issue: Issue, label: str | None = None) -> str:
    """Render the user prompt for issue triage."""
    body = issue.body or "(No description provided)"
    prompt = f"Issue #{issue.number}: {issue.title}\n\n{body}"
    if label:
        prompt += f"\n\nLabel applied: {label}\nRe-evaluate the plan with this label in mind."
    return prompt


def format_pull_request_prompt(pr: PullRequest, files: list[ChangedFile]) -> str:
    """Render the user prompt for a PR summary."""
    file_lines = "\n".join(f"- {f.filename} ({f.status}, +{f.additions}/-{f.deletions})" for f in files)
    return (
        f"Pull request #{pr.number}: {pr.title}\n\n"
        f"{pr.body or '(No description provided)'}\n\n"
        f"Changed files:\n{file_lines or '(none)'}"
    )


class TriageHandlers:
    """Handlers bound to the gateway, the triage LLM and the knowledge tool."""

    def __init__(
        self,
        git: GitHubRestProvider,
        llm: LLMProvider,
        knowledge: KnowledgeRecorder,
    ):
        self.git = git
        self.llm = llm
        self.knowledge = knowledge

    async def generate_plan(self, issue: Issue, label: str | None = None) -> str:
        """Ask the LLM for a triage plan."""
        return await self.llm.complete(TRIAGE_SYSTEM_PROMPT, format_issue_prompt(issue, label))

    async def handle_issue_opened(self, envelope: EventEnvelope) -> None:
        repo = envelope.repository
        issue = Issue.from_api(envelope.payload["issue"])
        log.info("triage_issue_opened", repo=repo, issue=issue.number)

        plan = await self.generate_plan(issue)
        await self.git.post_comment(repo, issue.number, f"{TRIAGE_HEADER}\n\n{plan}")

        log.info("triage_posted", repo=repo, issue=issue.number)

    async def handle_issue_labeled(self, envelope: EventEnvelope) -> None:
        """Re-triage with the newly applied label as extra context."""
        repo = envelope.repository
        issue = Issue.from_api(envelope.payload["issue"])
        label = (envelope.payload.get("label") or {}).get("name")
        log.info("triage_issue_labeled", repo=repo, issue=issue.number, label=label)

        plan = await self.generate_plan(issue, label)
        header = f"{TRIAGE_HEADER} (re-triage: {label})" if label else TRIAGE_HEADER
        await self.git.post_comment(repo, issue.number, f"{header}\n\n{plan}")

        log.info("retriage_posted", repo=repo, issue=issue.number, label=label)

    async def handle_pull_request_opened(self, envelope: EventEnvelope) -> None:
        repo = envelope.repository
        number = envelope.payload["pull_request"]["number"]
        log.info("summarize_pull_request", repo=repo, pr=number)

        pr = await self.git.get_pull_request(repo, number)
        files = await self.git.get_pull_request_files(repo, number)

        summary = await self.llm.complete(PR_SUMMARY_SYSTEM_PROMPT, format_pull_request_prompt(pr, files))
        await self.git.post_comment(repo, number, f"{PR_SUMMARY_HEADER}\n\n{summary}")

        log.info("pr_summary_posted", repo=repo, pr=number)

    async def handle_pull_request_closed(self, envelope: EventEnvelope) -> None:
        """Record a merged PR in the knowledge tool.

        Payloads without a pull request, or for unmerged PRs, are skipped.
        """
        pr_data = envelope.payload.get("pull_request")
        if not pr_data:
            log.info("pr_closed_skipped", reason="missing pull_request payload")
            return

        pr = PullRequest.from_api(pr_data)
        if not pr.merged:
            log.info("pr_closed_skipped", pr=pr.number, reason="not merged")
            return

        await self.knowledge.record(envelope.repository, pr)

    async def skip_unmerged_pull_request(self, envelope: EventEnvelope) -> None:
        pr_data = envelope.payload.get("pull_request") or {}
        log.info("pr_closed_without_merge", repo=envelope.repository, pr=pr_data.get("number"))
