"""CLI entry point for ticketflow."""

import asyncio
import sys
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path
from typing import TypeVar

import click
import structlog

from ticketflow import __version__
from ticketflow.config.settings import TicketflowSettings, ensure_required, load_settings
from ticketflow.engine.release import ReleaseCommand
from ticketflow.engine.review import ReviewCommand
from ticketflow.engine.start import StartCommand
from ticketflow.enums import IssueType
from ticketflow.exceptions import TicketflowError
from ticketflow.git.repository import Git
from ticketflow.models.domain import CreateIssue, GetIssue, Issue
from ticketflow.providers.github_rest import GitHubHost
from ticketflow.providers.jira import JiraTracker
from ticketflow.rendering.engine import TemplateEngine
from ticketflow.utils.caching import KeyValueStore, open_store
from ticketflow.utils.logging_config import configure_logging
from ticketflow.utils.messenger import Emoji, Messenger

log = structlog.get_logger(__name__)

T = TypeVar("T")


@click.group()
@click.version_option(__version__, prog_name="ticketflow")
@click.option(
    "--config",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Project configuration file (default: closest .ticketflow.yaml)",
)
@click.option("--log-level", default="WARNING", help="Logging level")
@click.option("--remote", default=None, help="Git remote to use instead of the configured one")
@click.option("--base-branch", default=None, help="Base branch to use instead of the configured one")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    log_level: str,
    remote: str | None,
    base_branch: str | None,
) -> None:
    """ticketflow: start, review and release work tracked in Jira."""
    configure_logging(log_level)
    ctx.obj = {
        "config_path": config,
        "remote": remote,
        "base_branch": base_branch,
        "messenger": Messenger(),
    }


def _load_settings(ctx: click.Context, require_credentials: bool = True) -> TicketflowSettings:
    settings = load_settings(config_path=ctx.obj["config_path"])
    if require_credentials:
        settings = ensure_required(settings)
    return settings.with_overrides(remote=ctx.obj["remote"], base_branch=ctx.obj["base_branch"])


def _execute(
    ctx: click.Context,
    name: str,
    runner: Callable[[TicketflowSettings, Messenger], Awaitable[T]],
    require_credentials: bool = True,
) -> T:
    """Load settings, run the command's coroutine and map failures to exit codes."""
    messenger: Messenger = ctx.obj["messenger"]
    started = time.monotonic()
    try:
        settings = _load_settings(ctx, require_credentials)
        result = asyncio.run(runner(settings, messenger))
    except TicketflowError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug(f"{name}_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        log.error(f"{name}_unexpected", exc_info=True)
        sys.exit(1)

    messenger.footer(time.monotonic() - started)
    return result


@asynccontextmanager
async def _tracker_and_git(settings: TicketflowSettings) -> AsyncIterator[tuple[JiraTracker, Git]]:
    """Open the cache store and build the tracker and git adapter.

    The store is flushed and the HTTP client closed when the block exits,
    whether or not the command succeeded.
    """
    store: KeyValueStore | None = await open_store(settings.cache.file_path, settings.cache.enabled)
    tracker = JiraTracker(settings.jira, store=store)
    try:
        yield tracker, Git(settings.git)
    finally:
        await tracker.close()
        if store is not None:
            await store.close()


def _create_code_host(settings: TicketflowSettings, git_adapter: Git) -> GitHubHost:
    repository = git_adapter.get_remote().repository()
    return GitHubHost(
        token=settings.github.token,
        owner=repository.owner,
        repo=repository.repo,
        base_url=settings.github.api_url or repository.api_url,
    )


@cli.command()
@click.argument("issue_id", required=False)
@click.option("-n", "--no-branch-issue", is_flag=True, help="Do not create a branch for the issue")
@click.option("-c", "--create", is_flag=True, help="Create a new issue instead of using an existing one")
@click.option("-t", "--title", help="Title of the issue to create")
@click.option("-d", "--description", default="", help="Description of the issue to create")
@click.option(
    "-k",
    "--kind",
    type=click.Choice([t.value for t in IssueType]),
    default=IssueType.FEATURE.value,
    show_default=True,
    help="Kind of issue to create",
)
@click.option("-p", "--project", help="Project to create the issue in")
@click.option("-l", "--label", "labels", multiple=True, help="Label for the created issue (repeatable)")
@click.pass_context
def start(
    ctx: click.Context,
    issue_id: str | None,
    no_branch_issue: bool,
    create: bool,
    title: str | None,
    description: str,
    kind: str,
    project: str | None,
    labels: tuple[str, ...],
) -> None:
    """Start working on an issue: mark it in progress and create a branch."""
    request: GetIssue | CreateIssue
    if create:
        if not title or not project:
            raise click.UsageError("--create requires --title and --project")
        request = CreateIssue(
            title=title,
            type=IssueType(kind),
            project=project,
            description=description,
            labels=list(labels),
        )
    else:
        if not issue_id:
            raise click.UsageError("Provide an ISSUE_ID or use --create")
        request = GetIssue(key=issue_id)

    async def run(settings: TicketflowSettings, messenger: Messenger) -> Issue | None:
        async with _tracker_and_git(settings) as (tracker, git_adapter):
            command = StartCommand(git_adapter, tracker, messenger, request, create_branch=not no_branch_issue)
            return await command.run()

    issue = _execute(ctx, "start", run)
    if issue is not None:
        click.echo(f"{issue.key}: {issue.title} {issue.url}".rstrip())


@cli.command()
@click.option("--draft", is_flag=True, help="Open the pull request as a draft")
@click.option("-l", "--label", "labels", multiple=True, help="Label for the pull request (repeatable)")
@click.option("-r", "--reviewer", "reviewers", multiple=True, help="Request a review from a user (repeatable)")
@click.option("-i", "--issue", "issues", multiple=True, help="Extra issue fixed by the branch (repeatable)")
@click.option("--no-tracker", is_flag=True, help="Do not read or update issues in Jira")
@click.pass_context
def review(
    ctx: click.Context,
    draft: bool,
    labels: tuple[str, ...],
    reviewers: tuple[str, ...],
    issues: tuple[str, ...],
    no_tracker: bool,
) -> None:
    """Push the current branch and open a pull request for it."""

    async def run(settings: TicketflowSettings, messenger: Messenger) -> None:
        async with _tracker_and_git(settings) as (tracker, git_adapter):
            command = ReviewCommand(
                git_adapter,
                tracker,
                messenger,
                code_host_factory=partial(_create_code_host, settings, git_adapter),
                templates=TemplateEngine(),
                draft=draft,
                labels=labels,
                reviewers=reviewers,
                extra_issues=issues,
                use_tracker=not no_tracker,
            )
            await command.run()

    _execute(ctx, "review", run)


@cli.command()
@click.argument("name")
@click.option("-i", "--issue", "issues", multiple=True, help="Extra issue included in the release (repeatable)")
@click.option("--no-tracker", is_flag=True, help="Do not read or update issues in Jira")
@click.option("--no-vcs-release", is_flag=True, help="Do not create a tag and release on GitHub")
@click.option("--dry-run", is_flag=True, help="Only print the changelog")
@click.pass_context
def release(
    ctx: click.Context,
    name: str,
    issues: tuple[str, ...],
    no_tracker: bool,
    no_vcs_release: bool,
    dry_run: bool,
) -> None:
    """Create release NAME: changelog, Jira version and GitHub release."""

    async def run(settings: TicketflowSettings, messenger: Messenger) -> str:
        async with _tracker_and_git(settings) as (tracker, git_adapter):
            command = ReleaseCommand(
                git_adapter,
                tracker,
                messenger,
                code_host_factory=None if no_vcs_release else partial(_create_code_host, settings, git_adapter),
                templates=TemplateEngine(),
                name=name,
                extra_issues=issues,
                use_tracker=not no_tracker,
                create_vcs_release=not no_vcs_release,
                dry_run=dry_run,
            )
            result = await command.run()
            return result.notes

    notes = _execute(ctx, "release", run)
    if dry_run:
        click.echo(notes, nl=False)


@cli.command("clear-cache")
@click.pass_context
def clear_cache(ctx: click.Context) -> None:
    """Remove every cached tracker response."""

    async def run(settings: TicketflowSettings, messenger: Messenger) -> None:
        store = await open_store(settings.cache.file_path, settings.cache.enabled)
        if store is None:
            messenger.emit("Cache is disabled, nothing to clear")
            return
        try:
            await store.clear()
        finally:
            await store.close()
        messenger.emit("Cache cleared", Emoji.SPARKLES)

    _execute(ctx, "clear_cache", run, require_credentials=False)


if __name__ == "__main__":
    cli()
