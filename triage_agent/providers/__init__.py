"""Provider implementations for the source-hosting API and the LLM endpoint.

Key Components:
    - GitHubRestProvider: Repository gateway over the GitHub REST API
    - LLMProvider: Abstract base for LLM completion providers
    - OpenAICompatibleProvider: Chat completions over an OpenAI-compatible API
"""

from triage_agent.providers.base import LLMProvider
from triage_agent.providers.github_rest import GitHubRestProvider
from triage_agent.providers.openai_compatible import OpenAICompatibleProvider

__all__ = [
    "GitHubRestProvider",
    "LLMProvider",
    "OpenAICompatibleProvider",
]
