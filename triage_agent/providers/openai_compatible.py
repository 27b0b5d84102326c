"""OpenAI-compatible chat completion provider (OpenRouter, Ollama, vLLM, etc.)."""

import re
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from triage_agent.exceptions import (
    InvalidGenerationError,
    TransientRemoteError,
    remote_error_for_status,
)
from triage_agent.providers.base import LLMProvider, ModelT
from triage_agent.utils.retry import ResilientExecutor

log = structlog.get_logger(__name__)

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a single surrounding markdown code fence, if present."""
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


class OpenAICompatibleProvider(LLMProvider):
    """LLM provider for servers implementing the OpenAI chat completions API.

    Structured completions request a ``json_schema`` response format built
    from the pydantic model and validate the reply against the same model.
    """

    def __init__(
        self,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "default",
        api_key: str | None = None,
        timeout: float = 120.0,
        temperature: float = 0.2,
        executor: ResilientExecutor | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize OpenAI-compatible provider.

        Args:
            base_url: API base URL (e.g., https://openrouter.ai/api/v1)
            model: Model identifier to use
            api_key: Optional API key for authentication
            timeout: Request timeout in seconds
            temperature: Sampling temperature
            executor: Retry executor wrapping each HTTP call
            transport: Optional httpx transport, used by tests to fake the API
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.executor = executor or ResilientExecutor()

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def complete(self, system_prompt: str, prompt: str) -> str:
        log.info("llm_complete", model=self.model, prompt_length=len(prompt))
        return await self._chat(system_prompt, prompt)

    async def complete_structured(
        self,
        system_prompt: str,
        prompt: str,
        schema: type[ModelT],
    ) -> ModelT:
        log.info("llm_complete_structured", model=self.model, schema=schema.__name__)

        response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": schema.__name__.lower(),
                "schema": schema.model_json_schema(),
            },
        }
        output = await self._chat(system_prompt, prompt, response_format=response_format)

        try:
            return schema.model_validate_json(strip_code_fence(output))
        except ValidationError as e:
            raise InvalidGenerationError(f"Response does not match {schema.__name__} schema: {e}") from e

    async def _chat(self, system_prompt: str, prompt: str, **extra: Any) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            **extra,
        }

        async def _post() -> dict[str, Any]:
            try:
                response = await self.client.post(f"{self.base_url}/chat/completions", json=payload)
            except httpx.HTTPError as e:
                raise TransientRemoteError(f"LLM request failed: {e}") from e

            if response.status_code >= 400:
                raise remote_error_for_status("LLM request failed", response.status_code, response.text)
            return response.json()

        result = await self.executor.execute(_post, f"chat_completion {self.model}")

        choices = result.get("choices", [])
        if not choices:
            raise InvalidGenerationError("No choices returned from API")

        output = choices[0].get("message", {}).get("content") or ""

        usage = result.get("usage", {})
        log.info(
            "llm_completed",
            model=self.model,
            output_length=len(output),
            tokens=usage.get("total_tokens", 0),
        )
        return output
