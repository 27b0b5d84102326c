"""CLI entry point for the triage agent."""

import asyncio
import sys

import click
import structlog

from triage_agent.config.settings import LLMConfig, TriageAgentSettings
from triage_agent.engine.fix_pipeline import FixPipeline, FixResult
from triage_agent.engine.handlers import TriageHandlers
from triage_agent.engine.listener import Listener, parse_envelope
from triage_agent.engine.router import EventRouter
from triage_agent.exceptions import ConfigurationError, MalformedEnvelopeError, TriageAgentError
from triage_agent.knowledge import KnowledgeRecorder
from triage_agent.providers.github_rest import GitHubRestProvider
from triage_agent.providers.openai_compatible import OpenAICompatibleProvider
from triage_agent.transport.redis_queue import RedisQueueTransport
from triage_agent.utils.logging_config import configure_logging
from triage_agent.utils.retry import ResilientExecutor

log = structlog.get_logger(__name__)


@click.group()
@click.option("--config", default=None, help="Path to YAML configuration file (default: environment only)")
@click.option("--log-level", default="INFO", help="Logging level")
@click.option("--json-logs/--console-logs", default=True, help="Log output format")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str, json_logs: bool) -> None:
    """triage-agent: LLM-assisted triage and fixes for GitHub issues."""
    configure_logging(log_level, json_output=json_logs)

    try:
        settings = TriageAgentSettings.from_yaml(config) if config else TriageAgentSettings()
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings}


def build_executor(settings: TriageAgentSettings) -> ResilientExecutor:
    return ResilientExecutor(
        max_attempts=settings.retry.max_attempts,
        base_delay=settings.retry.base_delay,
    )


def build_gateway(settings: TriageAgentSettings, executor: ResilientExecutor) -> GitHubRestProvider:
    return GitHubRestProvider(
        token=settings.github_token(),
        base_url=settings.github.base_url,
        timeout=settings.github.timeout,
        executor=executor,
    )


def build_llm(config: LLMConfig, executor: ResilientExecutor) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        base_url=config.base_url,
        model=config.model,
        api_key=config.api_key.get_secret_value() if config.api_key else None,
        timeout=config.timeout,
        temperature=config.temperature,
        executor=executor,
    )


@cli.command()
@click.option("--max-messages", type=int, default=None, help="Stop after receiving this many messages")
@click.pass_context
def listen(ctx: click.Context, max_messages: int | None) -> None:
    """Consume repository events from the queue and triage them."""
    try:
        settings = ctx.obj["settings"]
        received = asyncio.run(_listen(settings, max_messages))
        click.echo(f"Listener stopped after {received} messages")
    except TriageAgentError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("listen_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        log.error("listen_unexpected", exc_info=True)
        sys.exit(1)


@cli.command()
@click.argument("repo")
@click.argument("issue", type=int)
@click.pass_context
def fix(ctx: click.Context, repo: str, issue: int) -> None:
    """Attempt to fix ISSUE in REPO (owner/name) and open a pull request."""
    try:
        settings = ctx.obj["settings"]
        result = asyncio.run(_fix(settings, repo, issue))
    except TriageAgentError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("fix_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        log.error("fix_unexpected", exc_info=True)
        sys.exit(1)

    if not result.success:
        click.echo(f"Fix attempt failed: {result.error}", err=True)
        sys.exit(1)

    click.echo(f"PR created: {result.pull_request.html_url}")


@cli.command()
@click.argument("event_json")
@click.pass_context
def route(ctx: click.Context, event_json: str) -> None:
    """Show which handler EVENT_JSON (a raw envelope, or - for stdin) resolves to."""
    raw = sys.stdin.read() if event_json == "-" else event_json
    try:
        envelope = parse_envelope(raw)
    except MalformedEnvelopeError as e:
        click.echo(f"Malformed envelope: {e.message}", err=True)
        sys.exit(1)

    resolved = EventRouter(handlers=None).resolve_route(envelope)
    if resolved is None:
        click.echo(f"{envelope.event_type}.{envelope.action}: skipped")
    else:
        click.echo(f"{envelope.event_type}.{envelope.action}: {resolved.handler}")


async def _listen(settings: TriageAgentSettings, max_messages: int | None) -> int:
    """Wire the listener from settings and run it.

    Args:
        settings: Triage agent settings
        max_messages: Optional message bound

    Returns:
        Number of messages received
    """
    executor = build_executor(settings)
    git = build_gateway(settings, executor)
    llm = build_llm(settings.triage_llm, executor)
    knowledge = KnowledgeRecorder(
        executable=settings.knowledge.executable,
        category=settings.knowledge.category,
        timeout=settings.knowledge.timeout,
    )
    transport = RedisQueueTransport(
        host=settings.redis.host,
        port=settings.redis.port,
        password=settings.redis.password.get_secret_value() if settings.redis.password else None,
        db=settings.redis.db,
        queue=settings.redis.queue,
        receive_timeout=settings.redis.receive_timeout,
    )

    router = EventRouter(TriageHandlers(git, llm, knowledge))
    listener = Listener(
        transport,
        router,
        max_messages=max_messages,
        reconnect_delay=settings.redis.reconnect_delay,
    )

    click.echo(f"Listening on {settings.redis.host}:{settings.redis.port} ({settings.redis.queue})")
    try:
        return await listener.run()
    finally:
        await transport.close()
        await llm.aclose()
        await git.aclose()


async def _fix(settings: TriageAgentSettings, repo: str, issue_number: int) -> FixResult:
    """Run the fix pipeline for one issue.

    Args:
        settings: Triage agent settings
        repo: Repository full name
        issue_number: Issue to fix

    Returns:
        Pipeline outcome
    """
    executor = build_executor(settings)
    git = build_gateway(settings, executor)
    llm = build_llm(settings.fix_llm, executor)

    click.echo(f"Attempting fix for {repo}#{issue_number}...")
    try:
        pipeline = FixPipeline(git, llm, base_branch=settings.github.default_branch)
        return await pipeline.run(repo, issue_number)
    finally:
        await llm.aclose()
        await git.aclose()


if __name__ == "__main__":
    cli()
