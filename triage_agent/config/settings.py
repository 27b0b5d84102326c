"""
Configuration system using Pydantic for type-safe settings management.

Settings come from a YAML file (with ``${VAR}`` / ``${VAR:-default}``
interpolation) or, when no file is given, from ``TRIAGE_AGENT_*`` environment
variables using ``__`` as the nesting delimiter, e.g.
``TRIAGE_AGENT_GITHUB__TOKEN``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from triage_agent.exceptions import ConfigurationError


class GitHubConfig(BaseModel):
    """Source-hosting API configuration."""

    token: SecretStr | None = Field(default=None, description="Bearer token for the GitHub API")
    base_url: str = Field(default="https://api.github.com", description="API base URL")
    default_branch: str = Field(default="main", description="Branch fixes are based on")
    timeout: float = Field(default=120.0, gt=0, description="Per-request timeout in seconds")


class LLMConfig(BaseModel):
    """OpenAI-compatible LLM endpoint configuration."""

    base_url: str = Field(..., description="Chat completions API base URL")
    model: str = Field(..., description="Model identifier")
    api_key: SecretStr | None = Field(default=None, description="API key, if the endpoint needs one")
    timeout: float = Field(default=120.0, gt=0, description="Per-request timeout in seconds")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")


def _default_triage_llm() -> LLMConfig:
    return LLMConfig(base_url="http://localhost:11434/v1", model="deepseek-coder:6.7b")


def _default_fix_llm() -> LLMConfig:
    return LLMConfig(base_url="https://openrouter.ai/api/v1", model="deepseek/deepseek-chat-v3-0324")


class RedisConfig(BaseModel):
    """Event queue configuration."""

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6380, ge=1, le=65535, description="Redis port")
    password: SecretStr | None = Field(default=None, description="Redis password")
    db: int = Field(default=0, ge=0, description="Redis database index")
    queue: str = Field(default="triage:events", description="List key holding event envelopes")
    receive_timeout: float = Field(default=5.0, ge=0, description="Seconds to block waiting for a message")
    reconnect_delay: float = Field(default=5.0, ge=0, description="Seconds to wait before reconnecting")


class KnowledgeConfig(BaseModel):
    """External knowledge tool configuration."""

    executable: str = Field(default="know", description="Knowledge CLI executable")
    category: str = Field(default="architecture", description="Category for merged-PR entries")
    timeout: float = Field(default=60.0, gt=0, description="Seconds before the tool is killed")


class RetryConfig(BaseModel):
    """Resilient executor configuration."""

    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per outbound call")
    base_delay: float = Field(default=1.0, ge=0, description="Delay before the first retry in seconds")


class TriageAgentSettings(BaseSettings):
    """Main triage agent settings."""

    model_config = SettingsConfigDict(
        env_prefix="TRIAGE_AGENT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    triage_llm: LLMConfig = Field(default_factory=_default_triage_llm)
    fix_llm: LLMConfig = Field(default_factory=_default_fix_llm)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    def github_token(self) -> str:
        """Return the GitHub token.

        Raises:
            ConfigurationError: If no token is configured.
        """
        if self.github.token is None or not self.github.token.get_secret_value().strip():
            raise ConfigurationError("GitHub token is not configured (github.token)")
        return self.github.token.get_secret_value()

    @classmethod
    def from_yaml(cls, config_path: str) -> TriageAgentSettings:
        """Load settings from a YAML file with environment variable interpolation.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values.

        YAML comment lines are left untouched.

        Raises:
            ValueError: If a variable without default is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
