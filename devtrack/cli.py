"""CLI interface for devtrack."""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from devtrack.ai import ChatClient, DailyWorkAnalyzer
from devtrack.config import Config
from devtrack.database import (
    InboxStatus,
    MilestoneStatus,
    Project,
    ProjectStatus,
    Store,
)
from devtrack.errors import DevtrackError, InvalidRepository, ScannerError, StoreError
from devtrack.log_config import setup_logging
from devtrack.scanner import GitScanner
from devtrack.scheduler import ScanReport, ScanScheduler
from devtrack.scheduler.report import format_duration


class EchoNotifier:
    """Prints scheduler events to the terminal."""

    def emit(self, event: str, payload: dict) -> None:
        details = ", ".join(f"{key}={value}" for key, value in payload.items())
        click.echo(f"[{event}] {details}" if details else f"[{event}]")


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the devtrack database",
)
@click.option("-v", "--verbose", is_flag=True, help="Show log output")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    setup_logging(logging.INFO if verbose else logging.WARNING)
    ctx.ensure_object(dict)
    config = Config.from_env()
    if data_dir is not None:
        config.data_dir = data_dir
    ctx.obj["config"] = config


@contextmanager
def _errors_to_exit() -> Iterator[None]:
    try:
        yield
    except DevtrackError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


def _open_store(ctx: click.Context) -> Store:
    config: Config = ctx.obj["config"]
    return Store.open(config.data_dir)


def _scanner(ctx: click.Context) -> GitScanner:
    config: Config = ctx.obj["config"]
    return GitScanner(
        max_path_length=config.scanner.max_path_length,
        command_timeout=config.scanner.command_timeout,
    )


@contextmanager
def _scheduler(ctx: click.Context, store: Store, notifier=None) -> Iterator[ScanScheduler]:
    """Scheduler wired to the configured AI collaborator, if an API key is set."""
    config: Config = ctx.obj["config"]
    client = ChatClient(config.ai) if config.ai.api_key else None
    analyzer = DailyWorkAnalyzer(client) if client is not None else None
    try:
        yield ScanScheduler(store, _scanner(ctx), analyzer=analyzer, notifier=notifier or EchoNotifier())
    finally:
        if client is not None:
            client.close()


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return "..." + text[-(max_len - 3) :]


def _project_names(store: Store) -> dict[str, str]:
    return {p.id: p.name for p in store.get_projects()}


# ---- projects ----


@cli.group()
def project() -> None:
    """Manage tracked repositories."""


@project.command("add")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--name", help="Display name (defaults to the directory name)")
@click.pass_context
def project_add(ctx: click.Context, path: Path, name: str | None) -> None:
    path = path.resolve()
    with _errors_to_exit():
        if not _scanner(ctx).is_repository(path):
            raise InvalidRepository(f"Not a git repository: {path}")
        new_project = Project.new(name or path.name, str(path))
        with _open_store(ctx) as store:
            store.create_project(new_project)
    click.echo(f"Added project {new_project.name} ({new_project.id})")


@project.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ProjectStatus]),
    help="Only show projects with this status",
)
@click.pass_context
def project_list(ctx: click.Context, status: str | None) -> None:
    with _errors_to_exit(), _open_store(ctx) as store:
        projects = store.get_projects(ProjectStatus(status) if status else None)

    if not projects:
        click.echo("No projects found.")
        return

    click.echo("ID".ljust(38) + "Name".ljust(24) + "Status".ljust(10) + "Path")
    click.echo("-" * 100)
    for p in projects:
        click.echo(f"{p.id:<38}{_truncate(p.name, 23):<24}{p.status.value:<10}{p.path}")


@project.command("set-status")
@click.argument("project_id")
@click.argument("status", type=click.Choice([s.value for s in ProjectStatus]))
@click.pass_context
def project_set_status(ctx: click.Context, project_id: str, status: str) -> None:
    with _errors_to_exit(), _open_store(ctx) as store:
        updated = store.update_project_status(project_id, ProjectStatus(status))
    if not updated:
        click.echo(f"Error: Project not found: {project_id}", err=True)
        sys.exit(1)
    click.echo(f"Project {project_id} is now {status}")


@project.command("remove")
@click.argument("project_id")
@click.pass_context
def project_remove(ctx: click.Context, project_id: str) -> None:
    """Remove a project together with its logs, milestones, tags and inbox items."""
    with _errors_to_exit(), _open_store(ctx) as store:
        deleted = store.delete_project(project_id)
    if not deleted:
        click.echo(f"Error: Project not found: {project_id}", err=True)
        sys.exit(1)
    click.echo(f"Removed project {project_id}")


# ---- scanning ----


@cli.command()
@click.argument("path")
@click.option("--since", default="midnight", show_default=True, help="Start of the time window")
@click.option("--until", default=None, help="End of the time window")
@click.option("--uncommitted", is_flag=True, help="Show working-tree changes instead")
@click.pass_context
def scan(ctx: click.Context, path: str, since: str, until: str | None, uncommitted: bool) -> None:
    """Show per-file line changes of a repository."""
    scanner = _scanner(ctx)
    with _errors_to_exit():
        if uncommitted:
            files = scanner.uncommitted_changes(path)
        else:
            files = scanner.diff_since(path, since, until).files

    if not files:
        click.echo("No changes.")
        return

    click.echo(scanner.format_for_display(files))
    additions = sum(f.additions for f in files)
    deletions = sum(f.deletions for f in files)
    click.echo()
    click.echo(f"{len(files)} files changed, +{additions}/-{deletions}")


@cli.command()
@click.argument("path")
@click.pass_context
def tags(ctx: click.Context, path: str) -> None:
    """List the tags of a repository, newest first."""
    with _errors_to_exit():
        repo_tags = _scanner(ctx).list_tags(path)

    if not repo_tags:
        click.echo("No tags.")
        return

    for tag in repo_tags:
        line = f"{tag.name:<20} {tag.commit_hash:<10} {tag.date}"
        if tag.message:
            line += f"  {tag.message}"
        click.echo(line)


@cli.command("sync-tags")
@click.argument("project_id", required=False)
@click.option("--no-milestones", is_flag=True, help="Do not create milestones from new tags")
@click.pass_context
def sync_tags(ctx: click.Context, project_id: str | None, no_milestones: bool) -> None:
    """Cache tags of one project (or all active projects)."""
    with _errors_to_exit(), _open_store(ctx) as store, _scheduler(ctx, store) as scheduler:
        if project_id is not None:
            target = store.get_project(project_id)
            if target is None:
                click.echo(f"Error: Project not found: {project_id}", err=True)
                sys.exit(1)
            projects = [target]
        else:
            projects = store.get_projects(ProjectStatus.ACTIVE)

        failed = 0
        for p in projects:
            try:
                result = scheduler.sync_project_tags(p, auto_create_milestones=not no_milestones)
            except (ScannerError, StoreError) as e:
                if project_id is not None:
                    raise
                click.echo(f"Error: {p.name}: {e}", err=True)
                failed += 1
                continue
            click.echo(
                f"{p.name}: {result.total_tags} tags, {len(result.new_tags)} new, "
                f"{result.milestones_created} milestones created"
            )

    if failed:
        sys.exit(1)


@cli.command("run-scan")
@click.option("--startup", is_flag=True, help="Run a startup pass (diffs and tags only)")
@click.pass_context
def run_scan(ctx: click.Context, startup: bool) -> None:
    """Run one scan pass over all active projects."""
    with _errors_to_exit(), _open_store(ctx) as store, _scheduler(ctx, store) as scheduler:
        report = scheduler.run_startup_scan() if startup else scheduler.run_manual_scan()
    _print_report(report)


def _print_report(report: ScanReport) -> None:
    click.echo()
    click.echo(f"Scan complete ({report.kind}) in {format_duration(report.elapsed_seconds)}:")
    click.echo(f"  Projects scanned: {report.projects_scanned}")
    click.echo(f"  Projects with changes: {report.projects_with_changes}")
    click.echo(f"  Inbox items created: {report.inbox_items_created}")
    click.echo(f"  Daily logs written: {report.daily_logs_written}")
    click.echo(f"  New tags: {report.tags_synced}")
    click.echo(f"  Milestones created: {report.milestones_created}")
    if report.failures:
        click.echo(f"  Failures: {len(report.failures)}")
        for failed_id, reason in report.failures.items():
            click.echo(f"    {failed_id}: {reason}")


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Scan on startup, then periodically until interrupted."""
    with _errors_to_exit(), _open_store(ctx) as store, _scheduler(ctx, store) as scheduler:
        settings = store.get_user_settings()

        if settings.scan.scan_on_startup:
            _print_report(scheduler.run_startup_scan())

        if not scheduler.start(settings.scan):
            click.echo("Scheduled scanning is disabled.")
            return

        click.echo(f"Watching, scanning every {settings.scan.interval_minutes} minutes. Press Ctrl-C to stop.")
        try:
            while scheduler.is_running:
                scheduler.join(timeout=1.0)
        finally:
            scheduler.stop()


# ---- listings ----


@cli.command()
@click.option("--project", "project_id", help="Only show logs of this project")
@click.option("--limit", type=int, default=30, show_default=True, help="Maximum entries")
@click.pass_context
def logs(ctx: click.Context, project_id: str | None, limit: int) -> None:
    """Show daily work logs, newest first."""
    with _errors_to_exit(), _open_store(ctx) as store:
        names = _project_names(store)
        entries = store.get_daily_logs(project_id, limit=limit)

    if not entries:
        click.echo("No daily logs.")
        return

    for log in entries:
        name = names.get(log.project_id, log.project_id)
        category = log.user_override or log.category.value
        click.echo(f"{log.date}  {_truncate(name, 20):<20} [{category}] {log.summary}")


@cli.command()
@click.option("--project", "project_id", help="Only show milestones of this project")
@click.option(
    "--status",
    type=click.Choice([s.value for s in MilestoneStatus]),
    help="Only show milestones with this status",
)
@click.pass_context
def milestones(ctx: click.Context, project_id: str | None, status: str | None) -> None:
    with _errors_to_exit(), _open_store(ctx) as store:
        names = _project_names(store)
        entries = store.get_milestones(project_id, MilestoneStatus(status) if status else None)

    if not entries:
        click.echo("No milestones.")
        return

    for m in entries:
        name = names.get(m.project_id, m.project_id)
        click.echo(f"{_truncate(name, 20):<20} {m.status.value:<12} {m.source.value:<7} {m.title}")


@cli.command()
@click.option(
    "--status",
    type=click.Choice([s.value for s in InboxStatus]),
    default=InboxStatus.PENDING.value,
    show_default=True,
)
@click.pass_context
def inbox(ctx: click.Context, status: str) -> None:
    """Show inbox items written by scan passes."""
    with _errors_to_exit(), _open_store(ctx) as store:
        items = store.get_inbox_items(InboxStatus(status))

    if not items:
        click.echo("Inbox is empty.")
        return

    for item in items:
        click.echo(f"{item.created_at:%Y-%m-%d %H:%M}  {item.question}")
        if item.context:
            for line in item.context.splitlines():
                click.echo(f"    {line}")


@cli.command()
@click.option("--days", type=int, default=30, show_default=True, help="Size of the activity window")
@click.pass_context
def stats(ctx: click.Context, days: int) -> None:
    """Show daily-log counts per day and per category."""
    with _errors_to_exit(), _open_store(ctx) as store:
        activity = store.get_activity_stats(days)
        categories = store.get_category_distribution()

    click.echo(f"Activity (last {days} days):")
    if not activity:
        click.echo("  none")
    for day, count in activity:
        click.echo(f"  {day}  {count}")

    click.echo()
    click.echo("Categories:")
    if not categories:
        click.echo("  none")
    for category, count in categories:
        click.echo(f"  {category:<10} {count}")


# ---- settings ----


@cli.group("settings")
def settings_group() -> None:
    """Show or change user settings."""


@settings_group.command("show")
@click.pass_context
def settings_show(ctx: click.Context) -> None:
    with _errors_to_exit(), _open_store(ctx) as store:
        current = store.get_user_settings()
    click.echo(json.dumps(current.to_dict(), indent=2, sort_keys=True))


@settings_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx: click.Context, key: str, value: str) -> None:
    """Set one setting, e.g. `settings set scan.interval_minutes 15`."""
    with _errors_to_exit(), _open_store(ctx) as store:
        updated = store.get_user_settings().with_value(key, value)
        store.save_user_settings(updated)
    click.echo(f"{key} updated")


def main() -> None:
    """Entry point for the CLI."""
    cli(standalone_mode=True)  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
    main()
