"""Tests for triage_agent.config.settings."""

from pathlib import Path

import pytest

from triage_agent.config.settings import TriageAgentSettings
from triage_agent.exceptions import ConfigurationError

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "triage-agent.example.yaml"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host TRIAGE_AGENT_* variables out of the settings under test."""
    for name in [
        "TRIAGE_AGENT_GITHUB__TOKEN",
        "TRIAGE_AGENT_REDIS__PORT",
        "GITHUB_TOKEN",
        "OPENROUTER_API_KEY",
        "REDIS_HOST",
        "REDIS_PORT",
    ]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(content):
        path = tmp_path / "triage-agent.yaml"
        path.write_text(content)
        return str(path)

    return _write


class TestDefaults:
    def test_defaults(self):
        settings = TriageAgentSettings()

        assert settings.github.base_url == "https://api.github.com"
        assert settings.github.default_branch == "main"
        assert settings.triage_llm.model == "deepseek-coder:6.7b"
        assert settings.fix_llm.base_url == "https://openrouter.ai/api/v1"
        assert settings.redis.port == 6380
        assert settings.redis.queue == "triage:events"
        assert settings.retry.max_attempts == 3
        assert settings.retry.base_delay == 1.0
        assert settings.knowledge.executable == "know"

    def test_github_token_required(self):
        with pytest.raises(ConfigurationError, match="GitHub token"):
            TriageAgentSettings().github_token()

    def test_blank_github_token_rejected(self):
        settings = TriageAgentSettings(github={"token": "   "})

        with pytest.raises(ConfigurationError):
            settings.github_token()

    def test_nested_environment_variables(self, monkeypatch):
        monkeypatch.setenv("TRIAGE_AGENT_GITHUB__TOKEN", "ghp_env")
        monkeypatch.setenv("TRIAGE_AGENT_REDIS__PORT", "6379")

        settings = TriageAgentSettings()

        assert settings.github_token() == "ghp_env"
        assert settings.redis.port == 6379


class TestFromYaml:
    def test_example_config_loads(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")

        settings = TriageAgentSettings.from_yaml(str(EXAMPLE_CONFIG))

        assert settings.github_token() == "ghp_example"
        assert settings.triage_llm.base_url == "http://localhost:11434/v1"
        assert settings.fix_llm.api_key is None
        assert settings.redis.port == 6380

    def test_interpolation_with_defaults(self, monkeypatch, write_config):
        monkeypatch.setenv("REDIS_HOST", "redis.internal")
        path = write_config(
            "github:\n"
            "  token: literal-token\n"
            "redis:\n"
            "  host: ${REDIS_HOST}\n"
            "  port: ${REDIS_PORT:-6390}\n"
        )

        settings = TriageAgentSettings.from_yaml(path)

        assert settings.redis.host == "redis.internal"
        assert settings.redis.port == 6390

    def test_missing_variable(self, write_config):
        path = write_config("github:\n  token: ${GITHUB_TOKEN}\n")

        with pytest.raises(ConfigurationError, match="GITHUB_TOKEN"):
            TriageAgentSettings.from_yaml(path)

    def test_comment_lines_not_interpolated(self, write_config):
        path = write_config("# token: ${GITHUB_TOKEN}\nretry:\n  max_attempts: 5\n")

        settings = TriageAgentSettings.from_yaml(path)

        assert settings.retry.max_attempts == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            TriageAgentSettings.from_yaml(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, write_config):
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            TriageAgentSettings.from_yaml(write_config("redis: [unclosed\n"))

    def test_non_mapping(self, write_config):
        with pytest.raises(ConfigurationError, match="YAML object"):
            TriageAgentSettings.from_yaml(write_config("- a\n- b\n"))

    def test_validation_error(self, write_config):
        with pytest.raises(ConfigurationError, match="validate"):
            TriageAgentSettings.from_yaml(write_config("retry:\n  max_attempts: 0\n"))

    def test_empty_file_uses_defaults(self, write_config):
        settings = TriageAgentSettings.from_yaml(write_config(""))

        assert settings.redis.host == "localhost"
