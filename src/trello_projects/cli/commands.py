"""CLI command definitions for the Trello projects cache."""

import asyncio
import logging
from typing import Any
from urllib.parse import urlsplit

import click
from dotenv import load_dotenv

from trello_projects.models import BoardArtifacts
from trello_projects.services.cache import (
    CARDS_KEY,
    CONTENT_KEY,
    LABELS_KEY,
    PROJECTS_KEY,
    CacheError,
    CacheGateway,
)
from trello_projects.services.refresh import (
    Artifacts,
    RefreshOrchestrator,
    Schedule,
    ScheduleError,
)
from trello_projects.services.trello_client import FetchError, TrelloClient
from trello_projects.services.transform import build_projects, join_projects
from trello_projects.utils.config import (
    CACHE_REQUIRED,
    CONFIG_FILE_NAME,
    ENV_VARS,
    FETCH_REQUIRED,
    ConfigError,
    Settings,
    get_config_path,
    get_settings,
)
from trello_projects.utils.formatting import (
    format_cards,
    format_content,
    format_labels,
    format_projects,
    unpack,
)

# Load environment variables
load_dotenv()

GREEN_CHECK = click.style('✔', fg='green')
DRY_RUN_REQUIRED = ('board_id', 'public_list_id')


class CommandGroup(click.Group):
    """Command group that fails with status 1 on unknown commands."""

    def resolve_command(self, ctx: click.Context, args: list[str]) -> Any:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            raise click.ClickException("Unknown command, try --help") from e


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def mask_url(url: str) -> str:
    """Hide the password in a connection URL."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@")
    return parts._replace(netloc=netloc).geturl()


def echo_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


def load_settings(required: tuple[str, ...]) -> Settings:
    try:
        return get_settings(required=required)
    except ConfigError as e:
        raise click.ClickException(str(e))


def make_client() -> TrelloClient:
    try:
        return TrelloClient()
    except ConfigError as e:
        raise click.ClickException(str(e))


def report_artifacts(artifacts: Artifacts, settings: Settings) -> None:
    """Output artifacts of a dry run."""
    if isinstance(artifacts, BoardArtifacts):
        projects = artifacts.projects
    else:
        projects = build_projects(artifacts.cards, artifacts.labels, settings.public_list_id or '')
    echo_lines(format_projects([project.to_dict() for project in projects]))
    echo_lines(format_content(artifacts.content))


async def run_fetch(client: TrelloClient, settings: Settings, dry_run: bool) -> None:
    cache = None if dry_run else CacheGateway(settings.redis_url)
    orchestrator = RefreshOrchestrator(
        client,
        cache,
        settings,
        reporter=lambda artifacts: report_artifacts(artifacts, settings),
    )
    try:
        await orchestrator.run_once(dry_run=dry_run)
    finally:
        if cache is not None:
            await cache.close()


async def run_schedule(client: TrelloClient, settings: Settings, plan: Schedule) -> None:
    cache = CacheGateway(settings.redis_url)
    orchestrator = RefreshOrchestrator(client, cache, settings)
    try:
        await orchestrator.run_scheduled(plan)
    finally:
        await cache.close()


async def read_key(settings: Settings, key: str) -> Any:
    async with CacheGateway(settings.redis_url) as cache:
        return unpack(await cache.get(key))


async def read_projects(settings: Settings) -> list[dict[str, Any]] | None:
    """Read projects from the cache, joining split keys when needed."""
    async with CacheGateway(settings.redis_url) as cache:
        if settings.split:
            labels = await cache.get(LABELS_KEY)
            cards = await cache.get(CARDS_KEY)
            return join_projects(labels, cards, settings.public_list_id or '')
        return unpack(await cache.get(PROJECTS_KEY))


@click.group(cls=CommandGroup, invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Trello Projects CLI - Cache a Trello board's projects and content in Redis."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(1)


@cli.command()
@click.option('--dry-run', is_flag=True, help='Only output projects, do not store them')
@click.option('--verbose', is_flag=True, help='Show debug logging')
def fetch(dry_run: bool, verbose: bool) -> None:
    """Fetch the current projects and store them in the cache.

    Args:
        dry_run: If True, output the projects instead of storing them.
        verbose: If True, log debug output.
    """
    configure_logging(verbose)
    settings = load_settings(DRY_RUN_REQUIRED if dry_run else FETCH_REQUIRED)
    client = make_client()
    try:
        asyncio.run(run_fetch(client, settings, dry_run))
    except (FetchError, CacheError) as e:
        raise click.ClickException(f"Fetch failed: {e}")
    finally:
        client.close()

    if not dry_run:
        click.echo(f"{GREEN_CHECK} Fetched projects")


@cli.command()
@click.argument('cron')
@click.option('--timezone', help='The timezone to schedule in [Europe/London]')
@click.option('--verbose', is_flag=True, help='Show debug logging')
def schedule(cron: str, timezone: str | None, verbose: bool) -> None:
    """Schedule a fetch based on a cron expression, see https://crontab.guru

    Args:
        cron: Five field cron expression.
        timezone: Optional timezone, defaults to the configured one.
        verbose: If True, log debug output.
    """
    configure_logging(verbose)
    settings = load_settings(FETCH_REQUIRED)
    try:
        plan = Schedule(cron, timezone or settings.timezone)
    except ScheduleError as e:
        raise click.ClickException(str(e))

    client = make_client()
    click.echo(f"Scheduled for '{plan.expression}' in {plan.timezone}")
    click.echo('see: ' + click.style(plan.guru_url, fg='yellow', underline=True))
    try:
        asyncio.run(run_schedule(client, settings, plan))
    except KeyboardInterrupt:
        click.echo("Stopped")
    finally:
        client.close()


@click.command()
def list_projects() -> None:
    """List projects that are stored in the cache."""
    settings = load_settings(CACHE_REQUIRED)
    if settings.split and not settings.public_list_id:
        raise click.ClickException(
            f"{ENV_VARS['public_list_id']} is required to join cached cards into projects"
        )
    try:
        projects = asyncio.run(read_projects(settings))
    except CacheError as e:
        raise click.ClickException(f"List failed: {e}")
    echo_lines(format_projects(projects))


cli.add_command(list_projects, 'ls')
cli.add_command(list_projects, 'list-projects')


@cli.command('show:cards')
def show_cards() -> None:
    """List cards that are stored in the cache."""
    settings = load_settings(CACHE_REQUIRED)
    key = CARDS_KEY if settings.split else PROJECTS_KEY
    try:
        cards = asyncio.run(read_key(settings, key))
    except CacheError as e:
        raise click.ClickException(f"List failed: {e}")
    echo_lines(format_cards(cards))


@cli.command('show:content')
def show_content() -> None:
    """Show content that is stored in the cache."""
    settings = load_settings(CACHE_REQUIRED)
    try:
        content = asyncio.run(read_key(settings, CONTENT_KEY))
    except CacheError as e:
        raise click.ClickException(f"List failed: {e}")
    echo_lines(format_content(content))


@cli.command('show:labels')
def show_labels() -> None:
    """List labels that are stored in the cache."""
    settings = load_settings(CACHE_REQUIRED)
    try:
        labels = asyncio.run(read_key(settings, LABELS_KEY))
    except CacheError as e:
        raise click.ClickException(f"List failed: {e}")
    echo_lines(format_labels(labels))


@cli.command()
def config() -> None:
    """Show current configuration."""
    config_path = get_config_path()
    click.echo(f"\nConfiguration file: {config_path}")
    click.echo(f"Exists: {config_path.exists()}\n")

    try:
        settings = get_settings(required=())
    except ConfigError as e:
        raise click.ClickException(str(e))

    click.echo(f"Board ID: {settings.board_id or 'Not configured'}")
    click.echo(f"Public list ID: {settings.public_list_id or 'Not configured'}")
    click.echo(f"Content list ID: {settings.content_list_id or 'All lists'}")
    click.echo(f"Redis URL: {mask_url(settings.redis_url) if settings.redis_url else 'Not configured'}")
    click.echo(f"Fetch mode: {settings.fetch_mode}")
    click.echo(f"Timezone: {settings.timezone}")
    click.echo()
    if not config_path.exists():
        click.echo(f"  Settings come from the environment, or create {CONFIG_FILE_NAME}.")
        click.echo()
