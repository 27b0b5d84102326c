"""Configuration for the triage agent.

Example:
    >>> from triage_agent.config import TriageAgentSettings
    >>> settings = TriageAgentSettings.from_yaml("triage-agent.yaml")
    >>> settings.fix_llm.model
"""

from triage_agent.config.settings import (
    GitHubConfig,
    KnowledgeConfig,
    LLMConfig,
    RedisConfig,
    RetryConfig,
    TriageAgentSettings,
)

__all__ = [
    "GitHubConfig",
    "KnowledgeConfig",
    "LLMConfig",
    "RedisConfig",
    "RetryConfig",
    "TriageAgentSettings",
]
