"""Unit tests for the triage_agent.main CLI module."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from triage_agent.engine.fix_pipeline import FixResult
from triage_agent.exceptions import TransportError
from triage_agent.main import cli
from triage_agent.models.domain import CreatedPullRequest

PR_URL = "https://github.com/jordanpartridge/triage-agent/pull/43"


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep the CLI from reconfiguring structlog for the rest of the session."""
    with patch("triage_agent.main.configure_logging") as configure:
        yield configure


@pytest.fixture(autouse=True)
def no_github_token(monkeypatch):
    monkeypatch.delenv("TRIAGE_AGENT_GITHUB__TOKEN", raising=False)


class TestCliGroup:
    def test_help(self, cli_runner):
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("listen", "fix", "route"):
            assert command in result.output

    def test_missing_config_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(cli, ["--config", str(tmp_path / "nope.yaml"), "route", "{}"])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_log_options_forwarded(self, cli_runner, quiet_logging):
        cli_runner.invoke(cli, ["--log-level", "DEBUG", "--console-logs", "route", "{}"])

        quiet_logging.assert_called_once_with("DEBUG", json_output=False)


class TestFixCommand:
    def test_success(self, cli_runner):
        result_value = FixResult(success=True, pull_request=CreatedPullRequest(number=43, html_url=PR_URL))
        with patch("triage_agent.main._fix", new=AsyncMock(return_value=result_value)) as run_fix:
            result = cli_runner.invoke(cli, ["fix", "jordanpartridge/triage-agent", "42"])

        assert result.exit_code == 0
        assert f"PR created: {PR_URL}" in result.output
        assert run_fix.await_args.args[1:] == ("jordanpartridge/triage-agent", 42)

    def test_failure(self, cli_runner):
        result_value = FixResult(success=False, error="get_issue failed after 3 attempts")
        with patch("triage_agent.main._fix", new=AsyncMock(return_value=result_value)):
            result = cli_runner.invoke(cli, ["fix", "jordanpartridge/triage-agent", "42"])

        assert result.exit_code == 1
        assert "Fix attempt failed: get_issue failed after 3 attempts" in result.output

    def test_missing_token(self, cli_runner):
        result = cli_runner.invoke(cli, ["fix", "jordanpartridge/triage-agent", "42"])

        assert result.exit_code == 1
        assert "GitHub token is not configured" in result.output

    def test_issue_must_be_integer(self, cli_runner):
        result = cli_runner.invoke(cli, ["fix", "jordanpartridge/triage-agent", "forty-two"])

        assert result.exit_code == 2


class TestListenCommand:
    def test_reports_received_count(self, cli_runner):
        with patch("triage_agent.main._listen", new=AsyncMock(return_value=3)) as run_listen:
            result = cli_runner.invoke(cli, ["listen", "--max-messages", "3"])

        assert result.exit_code == 0
        assert "Listener stopped after 3 messages" in result.output
        assert run_listen.await_args.args[1] == 3

    def test_agent_error_exits_1(self, cli_runner):
        with patch("triage_agent.main._listen", new=AsyncMock(side_effect=TransportError("redis down"))):
            result = cli_runner.invoke(cli, ["listen"])

        assert result.exit_code == 1
        assert "redis down" in result.output

    def test_unexpected_error_exits_1(self, cli_runner):
        with patch("triage_agent.main._listen", new=AsyncMock(side_effect=RuntimeError("boom"))):
            result = cli_runner.invoke(cli, ["listen"])

        assert result.exit_code == 1
        assert "Unexpected error: boom" in result.output

    def test_keyboard_interrupt(self, cli_runner):
        with patch("triage_agent.main._listen", new=AsyncMock(side_effect=KeyboardInterrupt)):
            result = cli_runner.invoke(cli, ["listen"])

        assert result.exit_code == 130


class TestRouteCommand:
    @pytest.mark.parametrize(
        "event_type,action,expected",
        [
            ("issues", "opened", "issues.opened: handle_issue_opened"),
            ("issues", "labeled", "issues.labeled: handle_issue_labeled"),
            ("pull_request", "opened", "pull_request.opened: handle_pull_request_opened"),
            ("issues", "closed", "issues.closed: skipped"),
            ("deployment", "created", "deployment.created: skipped"),
        ],
    )
    def test_routes(self, cli_runner, event_type, action, expected):
        envelope = json.dumps({"eventType": event_type, "payload": {"action": action}})

        result = cli_runner.invoke(cli, ["route", envelope])

        assert result.exit_code == 0
        assert expected in result.output

    def test_merged_pull_request(self, cli_runner, pr_merged_payload):
        result = cli_runner.invoke(cli, ["route", json.dumps(pr_merged_payload)])

        assert "pull_request.closed: handle_pull_request_closed" in result.output

    def test_reads_stdin(self, cli_runner, issue_payload):
        result = cli_runner.invoke(cli, ["route", "-"], input=json.dumps(issue_payload))

        assert result.exit_code == 0
        assert "issues.opened: handle_issue_opened" in result.output

    def test_malformed(self, cli_runner):
        result = cli_runner.invoke(cli, ["route", "{not json"])

        assert result.exit_code == 1
        assert "Malformed envelope" in result.output
