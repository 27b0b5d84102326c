"""GitHub repository gateway using direct REST API calls.

Each public method is one remote operation routed through the
:class:`~triage_agent.utils.retry.ResilientExecutor`. Responses are converted
into the read-only projections in :mod:`triage_agent.models.domain`.
"""

import base64
from typing import Any

import httpx
import structlog

from triage_agent.exceptions import (
    PermanentRemoteError,
    RetriesExhaustedError,
    TransientRemoteError,
    remote_error_for_status,
)
from triage_agent.models.domain import (
    ChangedFile,
    CreatedPullRequest,
    FileSnapshot,
    Issue,
    PullRequest,
)
from triage_agent.utils.retry import ResilientExecutor

log = structlog.get_logger(__name__)

EXCLUDED_PREFIXES = ("vendor/", "node_modules/", ".git/", "storage/")
MAX_TREE_ENTRIES = 50


def filter_tree(entries: list[dict[str, Any]], limit: int = MAX_TREE_ENTRIES) -> list[str]:
    """Reduce a recursive tree listing to candidate source paths.

    Keeps ``blob`` entries only, drops dependency, VCS and storage
    directories, preserves listing order and truncates to ``limit`` paths.
    """
    paths = [
        entry["path"]
        for entry in entries
        if entry.get("type") == "blob" and not entry.get("path", "").startswith(EXCLUDED_PREFIXES)
    ]
    return paths[:limit]


class GitHubRestProvider:
    """Typed operations against the GitHub REST API.

    Repositories are addressed by full name (``owner/name``) per call, so a
    single gateway serves every repository the listener sees.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 120.0,
        executor: ResilientExecutor | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize GitHub gateway.

        Args:
            token: Bearer token used for every request
            base_url: API base URL (override for GitHub Enterprise)
            timeout: Per-request timeout in seconds
            executor: Retry executor; a default three-attempt executor is created if omitted
            transport: Optional httpx transport, used by tests to fake the API
        """
        self.token = token.strip() if token else token
        self.base_url = base_url.rstrip("/")
        self.executor = executor or ResilientExecutor()
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "GitHubRestProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request and translate failures into remote errors.

        Network errors, 5xx and 429 become TransientRemoteError; any other
        4xx becomes PermanentRemoteError.
        """
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransientRemoteError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise remote_error_for_status(f"{method} {path} failed", response.status_code, response.text)

        return response

    async def get_issue(self, repo: str, number: int) -> Issue:
        """Get a single issue."""
        log.info("get_issue", repo=repo, number=number)

        async def _get() -> Issue:
            response = await self._request("GET", f"/repos/{repo}/issues/{number}")
            return Issue.from_api(response.json())

        return await self.executor.execute(_get, f"get_issue {repo}#{number}")

    async def get_pull_request(self, repo: str, number: int) -> PullRequest:
        """Get a single pull request."""
        log.info("get_pull_request", repo=repo, number=number)

        async def _get() -> PullRequest:
            response = await self._request("GET", f"/repos/{repo}/pulls/{number}")
            return PullRequest.from_api(response.json())

        return await self.executor.execute(_get, f"get_pull_request {repo}#{number}")

    async def get_pull_request_files(self, repo: str, number: int) -> list[ChangedFile]:
        """List files changed by a pull request (first 100)."""
        log.info("get_pull_request_files", repo=repo, number=number)

        async def _get() -> list[ChangedFile]:
            response = await self._request(
                "GET",
                f"/repos/{repo}/pulls/{number}/files",
                params={"per_page": 100},
            )
            return [ChangedFile.from_api(item) for item in response.json()]

        return await self.executor.execute(_get, f"get_pull_request_files {repo}#{number}")

    async def get_repo_tree(self, repo: str, branch: str = "main") -> list[str]:
        """List candidate file paths of a branch.

        This is the one gateway operation that fails soft: once retries are
        exhausted an empty tree is returned, since file selection can work
        without candidates.
        """
        log.info("get_repo_tree", repo=repo, branch=branch)

        async def _get() -> list[dict[str, Any]]:
            response = await self._request(
                "GET",
                f"/repos/{repo}/git/trees/{branch}",
                params={"recursive": "1"},
            )
            return response.json().get("tree", [])

        try:
            entries = await self.executor.execute(_get, f"get_repo_tree {repo}@{branch}")
        except RetriesExhaustedError as e:
            log.warning("repo_tree_unavailable", repo=repo, branch=branch, error=str(e.last_error))
            return []

        return filter_tree(entries)

    async def get_file_content(self, repo: str, path: str, branch: str = "main") -> FileSnapshot:
        """Read a file and its version token.

        Content that is not valid UTF-8 is decoded with replacement
        characters rather than failing the read.
        """
        log.info("get_file_content", repo=repo, path=path, branch=branch)

        async def _get() -> FileSnapshot:
            response = await self._request(
                "GET",
                f"/repos/{repo}/contents/{path}",
                params={"ref": branch},
            )
            data = response.json()
            if isinstance(data, list):
                raise PermanentRemoteError(f"Path {path} is a directory, not a file")

            return FileSnapshot(
                path=path,
                content=base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace"),
                sha=data["sha"],
            )

        return await self.executor.execute(_get, f"get_file_content {repo}:{path}")

    async def create_branch(self, repo: str, name: str, from_branch: str = "main") -> str:
        """Create ``name`` pointing at the current commit of ``from_branch``.

        Both calls share one retry envelope, so a failed ref creation
        re-resolves the source commit. An existing branch is not treated as
        success; the remote's 422 surfaces after retries.

        Returns:
            The commit SHA the new branch points at.
        """
        log.info("create_branch", repo=repo, branch=name, from_branch=from_branch)

        async def _create() -> str:
            ref_response = await self._request("GET", f"/repos/{repo}/git/ref/heads/{from_branch}")
            source_sha = ref_response.json()["object"]["sha"]

            await self._request(
                "POST",
                f"/repos/{repo}/git/refs",
                json={"ref": f"refs/heads/{name}", "sha": source_sha},
            )
            return source_sha

        return await self.executor.execute(_create, f"create_branch {repo}:{name}")

    async def commit_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: str | None = None,
    ) -> str:
        """Write a complete file on ``branch``.

        ``sha`` is sent only when updating an existing file; leaving it out
        asks the remote to create the file.

        Returns:
            SHA of the resulting commit.
        """
        log.info("commit_file", repo=repo, path=path, branch=branch, update=sha is not None)

        data: dict[str, str] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            data["sha"] = sha

        async def _commit() -> str:
            response = await self._request("PUT", f"/repos/{repo}/contents/{path}", json=data)
            return response.json()["commit"]["sha"]

        return await self.executor.execute(_commit, f"commit_file {repo}:{path}")

    async def create_pull_request(
        self,
        repo: str,
        head: str,
        base: str,
        title: str,
        body: str,
    ) -> CreatedPullRequest:
        """Open a pull request from ``head`` into ``base``."""
        log.info("create_pull_request", repo=repo, head=head, base=base)

        async def _create() -> CreatedPullRequest:
            response = await self._request(
                "POST",
                f"/repos/{repo}/pulls",
                json={"title": title, "body": body, "head": head, "base": base},
            )
            pr_data = response.json()
            return CreatedPullRequest(number=pr_data["number"], html_url=pr_data["html_url"])

        return await self.executor.execute(_create, f"create_pull_request {repo}:{head}")

    async def post_comment(self, repo: str, issue_number: int, body: str) -> None:
        """Comment on an issue or pull request.

        Raises after exhausting retries like every other operation; callers
        that only report status wrap it in ``best_effort``.
        """
        log.info("post_comment", repo=repo, number=issue_number)

        async def _post() -> None:
            await self._request(
                "POST",
                f"/repos/{repo}/issues/{issue_number}/comments",
                json={"body": body},
            )

        await self.executor.execute(_post, f"post_comment {repo}#{issue_number}")
