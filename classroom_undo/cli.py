#!/usr/bin/env python3
"""
Command-line interface for the Classroom Undo Toolkit.

Provides trash, action history and cleanup management for operators.
"""

import asyncio
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import click
import pytz
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .cleanup import CleanupService
from .config import get_config
from .database import create_session_factory
from .soft_delete import EntityKind, SoftDeleteService
from .undo import (
    ActionHistoryFilters,
    ActionType,
    SQLActionLedgerStorage,
    UndoManager,
)

console = Console()

ENTITY_CHOICES = [kind.value for kind in EntityKind]
ACTION_CHOICES = [action.value for action in ActionType]


def build_services() -> Tuple[SoftDeleteService, UndoManager, CleanupService]:
    """Wire the services against the configured database."""
    config = get_config()
    session_factory = create_session_factory(config.database_url)

    trash = SoftDeleteService(session_factory, config=config)
    manager = UndoManager(trash, SQLActionLedgerStorage(session_factory))
    cleanup = CleanupService(trash, manager)
    return trash, manager, cleanup


def format_local(value: Optional[datetime]) -> str:
    """Render a naive UTC timestamp in the configured timezone."""
    if value is None:
        return "-"
    local = pytz.utc.localize(value).astimezone(pytz.timezone(get_config().timezone))
    return local.strftime("%Y-%m-%d %H:%M:%S")


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Classroom Undo Toolkit - trash, undo and cleanup for the dashboard."""
    level = logging.DEBUG if verbose else get_config().log_level.value
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Classroom Undo Toolkit[/bold blue] v{__version__}\n"
                "[dim]Trash, undo and cleanup for the teacher dashboard[/dim]\n\n"
                "Use [bold]classroom-undo --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Inspect toolkit configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config_dict = get_config().to_dict()
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    if format == "json":
        console.print_json(data=config_dict)
        return
    if format == "yaml":
        import yaml

        console.print(yaml.dump(config_dict, default_flow_style=False))
        return

    table = Table(title="Classroom Undo Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    categories = {
        "General": ["application_name", "environment", "timezone", "log_level"],
        "Storage": ["database_url"],
        "Trash": ["retention_days"],
        "Undo": [
            "undo_timeout_ms",
            "undo_grace_ms",
            "memory_horizon_minutes",
            "max_cached_actions",
            "history_retention_days",
        ],
        "Cleanup": ["cleanup_interval_hours", "scheduler_check_seconds", "state_file"],
    }

    for category, settings in categories.items():
        table.add_row(f"[bold]{category}[/bold]", "")
        for setting in settings:
            table.add_row(f"  {setting}", str(config_dict.get(setting)))

    console.print(table)


@cli.group()
def trash() -> None:
    """Manage soft-deleted records."""
    pass


@trash.command("list")
@click.option("--owner", required=True, help="Owner (teacher) ID")
@click.option("--entity", type=click.Choice(ENTITY_CHOICES), help="Only this kind")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
def trash_list(owner: str, entity: Optional[str], format: str) -> None:
    """List trashed records, newest deletion first."""
    service, _, _ = build_services()

    if entity:
        items = asyncio.run(service.get_deleted_items(entity, owner))
    else:
        items = asyncio.run(service.get_all_deleted_items(owner))

    if format == "json":
        console.print_json(data=[item.model_dump(mode="json") for item in items])
        return

    if not items:
        console.print("[yellow]Trash is empty[/yellow]")
        return

    table = Table(title=f"Trash of {owner} ({len(items)} item(s))")
    table.add_column("Entity", style="blue")
    table.add_column("ID", style="cyan")
    table.add_column("Deleted at", style="green")
    table.add_column("Days left", justify="right")

    for item in items:
        days = str(item.days_remaining)
        if item.days_remaining <= 1:
            days = f"[red]{days}[/red]"
        elif item.days_remaining <= 7:
            days = f"[yellow]{days}[/yellow]"
        table.add_row(str(item.entity), item.id, format_local(item.deleted_at), days)

    console.print(table)


@trash.command("summary")
@click.option("--owner", required=True, help="Owner (teacher) ID")
def trash_summary(owner: str) -> None:
    """Count trashed records by kind and by expiry."""
    service, _, _ = build_services()
    summary = asyncio.run(service.get_trash_summary(owner))

    table = Table(title=f"Trash summary for {owner}")
    table.add_column("Entity", style="blue")
    table.add_column("Count", justify="right")
    for kind, count in summary.by_entity.items():
        table.add_row(kind, str(count))
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total}[/bold]")

    console.print(table)
    console.print(f"Expiring today: [red]{summary.expiring_today}[/red]")
    console.print(f"Expiring this week: [yellow]{summary.expiring_this_week}[/yellow]")


@trash.command("restore")
@click.argument("entity", type=click.Choice(ENTITY_CHOICES))
@click.argument("entity_ids", nargs=-1, required=True)
@click.option("--owner", help="Only restore records of this owner")
def trash_restore(entity: str, entity_ids: Tuple[str, ...], owner: Optional[str]) -> None:
    """Take records out of the trash."""
    service, _, _ = build_services()
    result = asyncio.run(service.restore_bulk(entity, list(entity_ids), owner))

    if not result.success:
        fail(result.error or "Restore failed")
    console.print(f"[green]✓[/green] Restored {len(entity_ids)} {entity} record(s)")


@trash.command("purge")
@click.argument("entity", type=click.Choice(ENTITY_CHOICES))
@click.argument("entity_ids", nargs=-1, required=True)
@click.option("--owner", help="Only purge records of this owner")
@click.confirmation_option(prompt="Permanently delete these records?")
def trash_purge(entity: str, entity_ids: Tuple[str, ...], owner: Optional[str]) -> None:
    """Permanently delete records. This cannot be undone."""
    service, _, _ = build_services()
    result = asyncio.run(
        service.permanent_delete_bulk(entity, list(entity_ids), owner)
    )

    if not result.success:
        fail(result.error or "Permanent delete failed")
    console.print(f"[green]✓[/green] Permanently deleted {result.total_deleted} record(s)")


@trash.command("empty")
@click.option("--owner", required=True, help="Owner (teacher) ID")
@click.confirmation_option(prompt="Permanently delete everything in the trash?")
def trash_empty(owner: str) -> None:
    """Permanently delete everything in an owner's trash."""
    service, _, _ = build_services()
    result = asyncio.run(service.empty_trash(owner))

    console.print(f"[green]✓[/green] Removed {result.total_deleted} record(s)")
    if result.error:
        fail(result.error)


@cli.group()
def history() -> None:
    """Browse and clear the action history."""
    pass


@history.command("list")
@click.option("--owner", required=True, help="Owner (teacher) ID")
@click.option("--type", "action_type", type=click.Choice(["all"] + ACTION_CHOICES))
@click.option("--entity", type=click.Choice(["all"] + ENTITY_CHOICES))
@click.option(
    "--start-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="First day, in the configured timezone",
)
@click.option(
    "--end-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Last day (inclusive), in the configured timezone",
)
@click.option("--search", help="Match the description, case-insensitive")
@click.option("--limit", type=int, default=20, help="Page size")
@click.option("--offset", type=int, default=0, help="Rows to skip")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
def history_list(
    owner: str,
    action_type: Optional[str],
    entity: Optional[str],
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    search: Optional[str],
    limit: int,
    offset: int,
    format: str,
) -> None:
    """List recorded actions, newest first."""
    try:
        filters = ActionHistoryFilters(
            action_type=action_type,
            entity=entity,
            start_date=start_date,
            end_date=end_date,
            search=search,
            day_timezone=get_config().timezone,
        )
    except ValueError as e:
        fail(str(e))
        return

    _, manager, _ = build_services()
    page = asyncio.run(
        manager.get_action_history(owner, limit=limit, offset=offset, filters=filters)
    )

    if format == "json":
        data: Dict[str, Any] = page.model_dump(mode="json")
        console.print_json(data=data)
        return

    if not page.items:
        console.print("[yellow]No actions found matching criteria[/yellow]")
        return

    table = Table(title=f"Action history (showing {len(page.items)} of {page.total})")
    table.add_column("Time", style="cyan")
    table.add_column("Action ID", style="dim")
    table.add_column("Description", style="green")
    table.add_column("Undo", justify="center")

    for item in page.items:
        undo_mark = "[green]✓[/green]" if item.can_undo else "[dim]✗[/dim]"
        table.add_row(
            format_local(item.created_at), item.id, item.description, undo_mark
        )

    console.print(table)


@history.command("clear")
@click.option("--owner", required=True, help="Owner (teacher) ID")
@click.confirmation_option(prompt="Delete the whole action history?")
def history_clear(owner: str) -> None:
    """Delete an owner's action history."""
    _, manager, _ = build_services()
    result = asyncio.run(manager.clear_history(owner))

    if not result.success:
        fail(result.error or "Gagal menghapus history")
    console.print(f"[green]✓[/green] Cleared action history of {owner}")


@cli.command("undo")
@click.argument("action_id")
def undo_action(action_id: str) -> None:
    """Undo a recorded action."""
    _, manager, _ = build_services()
    result = asyncio.run(manager.undo(action_id))

    if not result.success:
        fail(result.error or "Gagal membatalkan aksi")
    console.print(f"[green]✓[/green] Undid {action_id}")


@cli.group()
def cleanup() -> None:
    """Run and inspect the retention sweep."""
    pass


@cleanup.command("run")
@click.option("--force", is_flag=True, help="Run even if the interval has not passed")
def cleanup_run(force: bool) -> None:
    """Purge expired trash and old action history."""
    _, _, service = build_services()

    if force:
        result = asyncio.run(service.run_cleanup())
    else:
        result = asyncio.run(service.run_cleanup_if_needed())

    if result is None:
        info = service.get_last_cleanup_info()
        console.print(
            f"[yellow]Skipped: last cleanup ran {info.hours_ago} hour(s) ago[/yellow]"
        )
        return

    table = Table(title="Cleanup result")
    table.add_column("Entity", style="blue")
    table.add_column("Deleted", justify="right")
    for kind, count in result.deleted_records.items():
        table.add_row(kind, str(count))
    table.add_row("[bold]action history[/bold]", str(result.deleted_actions))
    console.print(table)

    if not result.success:
        fail(result.error or "Cleanup failed")
    if result.error:
        console.print(f"[yellow]⚠ {result.error}[/yellow]")


@cleanup.command("status")
def cleanup_status() -> None:
    """Show when the last cleanup ran."""
    _, _, service = build_services()
    info = service.get_last_cleanup_info()

    if info.timestamp is None:
        console.print("[yellow]Cleanup has never run[/yellow]")
    else:
        console.print(
            f"Last cleanup: [cyan]{format_local(info.timestamp)}[/cyan] "
            f"({info.hours_ago} hour(s) ago)"
        )

    due = "[green]yes[/green]" if service.should_run_cleanup() else "no"
    console.print(f"Due: {due}")


if __name__ == "__main__":
    cli()
