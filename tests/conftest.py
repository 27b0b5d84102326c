"""Pytest configuration and shared fixtures."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from triage_agent.providers.base import LLMProvider, ModelT
from triage_agent.providers.github_rest import GitHubRestProvider
from triage_agent.utils.retry import ResilientExecutor

Responder = tuple[int, Any] | Callable[[httpx.Request], httpx.Response]


class DelayRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeGitHubAPI:
    """In-memory GitHub REST API served through httpx.MockTransport.

    Routes are keyed by (method, path). Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Responder] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method, path)] = (status, body if body is not None else {})

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(responder):
            return responder(request)
        status, body = responder
        return httpx.Response(status, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def sent_json(self, method: str, path: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.sent(method, path)]


class FakeLLM(LLMProvider):
    """Scripted LLM provider.

    Queued items are returned in order; queued exceptions are raised.
    Structured items are dicts validated against the requested schema.
    """

    def __init__(self, texts: list[Any] | None = None, structured: list[Any] | None = None) -> None:
        self.texts = list(texts or [])
        self.structured = list(structured or [])
        self.text_calls: list[tuple[str, str]] = []
        self.structured_calls: list[tuple[str, str, type]] = []

    async def complete(self, system_prompt: str, prompt: str) -> str:
        self.text_calls.append((system_prompt, prompt))
        item = self.texts.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def complete_structured(self, system_prompt: str, prompt: str, schema: type[ModelT]) -> ModelT:
        self.structured_calls.append((system_prompt, prompt, schema))
        item = self.structured.pop(0)
        if isinstance(item, Exception):
            raise item
        return schema.model_validate(item)


@pytest.fixture
def delays() -> DelayRecorder:
    return DelayRecorder()


@pytest.fixture
def executor(delays: DelayRecorder) -> ResilientExecutor:
    """Three-attempt executor that never really waits."""
    return ResilientExecutor(delay=delays)


@pytest.fixture
def github_api() -> FakeGitHubAPI:
    return FakeGitHubAPI()


@pytest_asyncio.fixture
async def gateway(github_api: FakeGitHubAPI, executor: ResilientExecutor):
    """GitHub gateway wired to the fake API."""
    provider = GitHubRestProvider(token="test-token", executor=executor, transport=github_api.transport())
    yield provider
    await provider.aclose()


@pytest.fixture
def issue_payload() -> dict[str, Any]:
    return {
        "eventType": "issues",
        "payload": {
            "action": "opened",
            "repository": {"full_name": "jordanpartridge/triage-agent"},
            "issue": {
                "number": 42,
                "title": "Add dark mode",
                "body": "We need a dark mode toggle in the settings page.",
            },
        },
    }


@pytest.fixture
def pr_merged_payload() -> dict[str, Any]:
    return {
        "eventType": "pull_request",
        "payload": {
            "action": "closed",
            "repository": {"full_name": "jordanpartridge/triage-agent"},
            "pull_request": {
                "number": 15,
                "title": "Add authentication feature",
                "body": "Implements OAuth2 login flow.",
                "merged": True,
                "merged_at": "2025-01-15T10:30:00Z",
                "html_url": "https://github.com/jordanpartridge/triage-agent/pull/15",
                "head": {"ref": "feat/auth"},
                "user": {"login": "jordanpartridge"},
            },
        },
    }
