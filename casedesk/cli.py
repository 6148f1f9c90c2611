#!/usr/bin/env python3
"""
Command-line interface for CaseDesk Trash.

Provides schema setup, trash inspection and trash lifecycle operations.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import pandas as pd  # type: ignore[import-untyped]
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .access_control import Actor
from .config import get_config
from .trash import (
    AggregateCounter,
    EmptyTrashError,
    EmptyTrashResult,
    EntityKind,
    EntityStore,
    TrashError,
    TrashService,
    UnauthorizedError,
    create_store,
)

console = Console()


def _store(ctx: click.Context) -> EntityStore:
    """Create the entity store once per invocation."""
    obj = ctx.ensure_object(dict)
    if "store" not in obj:
        database_url = obj.get("database_url") or get_config().database_url
        obj["store"] = create_store(database_url)
    store: EntityStore = obj["store"]
    return store


def _service(ctx: click.Context) -> TrashService:
    return TrashService(_store(ctx), config=get_config())


def _actor(ctx: click.Context) -> Optional[Actor]:
    obj = ctx.ensure_object(dict)
    if not obj.get("role"):
        return None
    return Actor(id=obj.get("actor_id") or "cli", role=obj["role"])


def _fail(action: str, error: Exception) -> None:
    if isinstance(error, TrashError):
        console.print(f"[red]Error {action} ({error.code}): {error.message}[/red]")
    else:
        console.print(f"[red]Error {action}: {error}[/red]")
    sys.exit(1)


def _print_purge_result(title: str, result: EmptyTrashResult) -> None:
    table = Table(title=title)
    table.add_column("Table", style="cyan")
    table.add_column("Rows removed", style="green", justify="right")

    for kind, count in result.purged.items():
        table.add_row(EntityKind(kind).table, str(count))
    for child_table, count in result.cascade_deleted.items():
        table.add_row(f"{child_table} [dim](cascade)[/dim]", str(count))

    console.print(table)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--database-url",
    envvar="CASEDESK_DATABASE_URL",
    help="SQLAlchemy database URL (defaults to the configured URL)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level (defaults to the configured level)",
)
@click.pass_context
def cli(
    ctx: click.Context, database_url: Optional[str], log_level: Optional[str]
) -> None:
    """CaseDesk Trash - Soft delete, restore and purge for case management."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url

    level = log_level or get_config().log_level
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logging.getLogger().setLevel(level)

    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]CaseDesk Trash[/bold blue] v{__version__}\n"
                "[dim]Soft delete, restore and purge for case management[/dim]\n\n"
                "Use [bold]casedesk --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Inspect configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config_dict = get_config().to_dict()
        if config_dict.get("jwt_secret"):
            config_dict["jwt_secret"] = "********"

        if format == "json":
            console.print_json(data=config_dict)
        elif format == "yaml":
            import yaml

            console.print(yaml.dump(config_dict, default_flow_style=False))
        else:
            table = Table(title="CaseDesk Configuration", show_header=True)
            table.add_column("Setting", style="cyan")
            table.add_column("Value", style="green")

            categories = {
                "General": ["application_name", "environment", "log_level"],
                "Storage": ["database_url"],
                "Trash": [
                    "trash_retention_days",
                    "purge_batch_size",
                    "trash_admin_roles",
                ],
                "Counters": ["terminal_case_statuses", "unpaid_invoice_statuses"],
                "Tokens": ["jwt_secret", "jwt_audience", "jwt_algorithms"],
            }

            for category, settings in categories.items():
                table.add_row(f"[bold]{category}[/bold]", "")
                for setting in settings:
                    value = config_dict.get(setting)
                    if value is None:
                        value = "[dim]Not configured[/dim]"
                    elif isinstance(value, list):
                        value = ", ".join(str(item) for item in value)
                    table.add_row(f"  {setting}", str(value))

            console.print(table)

    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)


@cli.group()
def db() -> None:
    """Database management."""
    pass


@db.command("init")
@click.pass_context
def db_init(ctx: click.Context) -> None:
    """Create the CaseDesk tables."""
    try:
        _store(ctx).init_schema()
        console.print("[green]✓[/green] Database schema initialized")
    except Exception as e:
        _fail("initializing database", e)


@cli.group()
@click.option(
    "--actor-id", envvar="CASEDESK_ACTOR_ID", help="User id recorded for operations"
)
@click.option(
    "--role",
    envvar="CASEDESK_ROLE",
    help="Role of the acting user (super_admin, manager, assistant, accountant)",
)
@click.pass_context
def trash(ctx: click.Context, actor_id: Optional[str], role: Optional[str]) -> None:
    """Trash lifecycle operations."""
    ctx.ensure_object(dict)
    ctx.obj["actor_id"] = actor_id
    ctx.obj["role"] = role


def _trash_rows(ctx: click.Context, kind: Optional[str]) -> List[Dict[str, Any]]:
    items = _service(ctx).list_trash(_actor(ctx), kind)
    return [item.model_dump(mode="json") for item in items]


@trash.command("list")
@click.option(
    "--kind",
    type=click.Choice([kind.value for kind in EntityKind]),
    help="Only list one entity kind",
)
@click.option("--format", type=click.Choice(["table", "json", "csv"]), default="table")
@click.pass_context
def trash_list(ctx: click.Context, kind: Optional[str], format: str) -> None:
    """List trashed items inside the retention window."""
    try:
        rows = _trash_rows(ctx, kind)

        if format == "json":
            console.print_json(data=rows)
            return
        if format == "csv":
            print(pd.DataFrame(rows).to_csv(index=False))
            return

        if not rows:
            console.print("[yellow]Trash is empty[/yellow]")
            return

        table = Table(title=f"Trash ({len(rows)} items)")
        table.add_column("Type", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Description", style="dim")
        table.add_column("Deleted", style="yellow")
        table.add_column("Days left", style="magenta", justify="right")
        table.add_column("ID", style="blue")

        for row in rows:
            days_left = row["days_remaining"]
            if days_left <= 3:
                days_left = f"[red]{days_left}[/red]"
            table.add_row(
                row["entity_type"],
                row["name"],
                row["description"] or "",
                row["deleted_at"][:19].replace("T", " "),
                str(days_left),
                row["id"],
            )

        console.print(table)

    except Exception as e:
        _fail("listing trash", e)


@trash.command("export")
@click.option("--output", type=click.Path(), required=True, help="Output file path")
@click.option("--format", type=click.Choice(["csv", "json", "excel"]), default="csv")
@click.option(
    "--kind",
    type=click.Choice([kind.value for kind in EntityKind]),
    help="Only export one entity kind",
)
@click.pass_context
def trash_export(
    ctx: click.Context, output: str, format: str, kind: Optional[str]
) -> None:
    """Export the trash listing to a file."""
    try:
        rows = _trash_rows(ctx, kind)
        df = pd.DataFrame(
            rows,
            columns=[
                "id",
                "entity_type",
                "name",
                "description",
                "deleted_at",
                "days_remaining",
            ],
        )

        output_path = Path(output)
        if format == "json":
            df.to_json(output_path, orient="records", date_format="iso", indent=2)
        elif format == "excel":
            df.to_excel(output_path, index=False, engine="openpyxl")
        else:  # csv
            df.to_csv(output_path, index=False)

        console.print(
            f"[green]✓ Exported {len(rows)} trashed items to {output_path}[/green]"
        )

    except Exception as e:
        _fail("exporting trash", e)


@trash.command("summary")
@click.pass_context
def trash_summary(ctx: click.Context) -> None:
    """Display summary counts."""
    try:
        if _actor(ctx) is None:
            raise UnauthorizedError()
        counter = AggregateCounter(_store(ctx), config=get_config())
        summary = counter.compute_summary()
        by_kind = counter.trashed_by_kind()

        console.print(
            Panel.fit(
                f"[bold]CaseDesk Summary[/bold]\n\n"
                f"Active cases: [cyan]{summary.active_cases:,}[/cyan]\n"
                f"Unpaid invoices: [yellow]{summary.unpaid_invoices:,}[/yellow]\n"
                f"Trashed items: [red]{summary.trashed_items:,}[/red]",
                border_style="blue",
            )
        )

        table = Table(title="Trash by Kind")
        table.add_column("Kind", style="cyan")
        table.add_column("Count", style="green", justify="right")
        for kind_name, count in by_kind.items():
            table.add_row(kind_name, str(count))

        console.print(table)

    except Exception as e:
        _fail("calculating summary", e)


@trash.command("delete")
@click.argument("kind")
@click.argument("entity_id")
@click.pass_context
def trash_delete(ctx: click.Context, kind: str, entity_id: str) -> None:
    """Move an item to the trash."""
    try:
        _service(ctx).soft_delete(kind, entity_id, _actor(ctx))
        console.print(f"[green]✓[/green] Moved {kind} {entity_id} to the trash")
    except Exception as e:
        _fail("deleting item", e)


@trash.command("restore")
@click.argument("kind")
@click.argument("entity_id")
@click.pass_context
def trash_restore(ctx: click.Context, kind: str, entity_id: str) -> None:
    """Restore an item from the trash."""
    try:
        _service(ctx).restore(kind, entity_id, _actor(ctx))
        console.print(f"[green]✓[/green] Restored {kind} {entity_id}")
    except Exception as e:
        _fail("restoring item", e)


@trash.command("purge")
@click.argument("kind")
@click.argument("entity_id")
@click.pass_context
def trash_purge(ctx: click.Context, kind: str, entity_id: str) -> None:
    """Permanently delete a trashed item and its dependents."""
    try:
        result = _service(ctx).purge_one(kind, entity_id, _actor(ctx))
        cascade = sum(result.cascade_deleted.values())
        console.print(f"[green]✓[/green] Permanently deleted {kind} {entity_id}")
        console.print(f"  Removed {cascade} dependent rows")
    except Exception as e:
        _fail("purging item", e)


def _run_batch_purge(ctx: click.Context, title: str, expired_only: bool) -> None:
    service = _service(ctx)
    actor = _actor(ctx)
    try:
        if expired_only:
            result = service.purge_expired(actor)
        else:
            result = service.empty_trash(actor)
    except EmptyTrashError as e:
        _print_purge_result(title, EmptyTrashResult(purged=e.purged))
        console.print("[red]✗ Some kinds could not be purged:[/red]")
        for kind_name, message in e.failures.items():
            console.print(f"  [red]• {kind_name}: {message}[/red]")
        sys.exit(1)

    _print_purge_result(title, result)
    console.print(
        f"[green]✓ Permanently deleted {result.total_purged} trashed items[/green]"
    )


@trash.command("empty")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def trash_empty(ctx: click.Context, yes: bool) -> None:
    """Permanently delete everything in the trash."""
    if not yes:
        click.confirm(
            "Permanently delete every trashed item? This cannot be undone",
            abort=True,
        )
    try:
        _run_batch_purge(ctx, "Emptied Trash", expired_only=False)
    except Exception as e:
        _fail("emptying trash", e)


@trash.command("purge-expired")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def trash_purge_expired(ctx: click.Context, yes: bool) -> None:
    """Permanently delete items past the retention window."""
    if not yes:
        days = get_config().trash_retention_days
        click.confirm(
            f"Permanently delete items trashed more than {days} days ago?",
            abort=True,
        )
    try:
        _run_batch_purge(ctx, "Expired Items Purged", expired_only=True)
    except Exception as e:
        _fail("purging expired items", e)


if __name__ == "__main__":
    cli()
