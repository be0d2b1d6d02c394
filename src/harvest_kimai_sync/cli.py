"""Command-line interface for harvest-kimai-sync."""

import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from harvest_kimai_sync import __version__
from harvest_kimai_sync.config import Config
from harvest_kimai_sync.db import LocalStore, TaskRecord
from harvest_kimai_sync.exceptions import HarvestKimaiSyncError, ValidationError
from harvest_kimai_sync.harvest import HarvestClient
from harvest_kimai_sync.kimai import KimaiClient
from harvest_kimai_sync.sync import ReconcileResult, SyncEngine, TaskExtractionResult, TransferResult
from harvest_kimai_sync.utils import current_month, get_logger, parse_date_arg, setup_logging, yesterday

app = typer.Typer(help="Transfer time entries from Harvest to Kimai")
console = Console()
logger = get_logger(__name__)

CONFIG_DIR_HELP = "Configuration directory. Defaults to ~/.harvest-kimai-sync/"


def _load_config(config_dir: Optional[Path]) -> Config:
    load_dotenv()
    return Config(config_dir)


def resolve_date_range(
    from_date: Optional[str],
    to_date: Optional[str],
    this_month: bool,
    only_yesterday: bool,
    today: Optional[date] = None,
) -> tuple[date, date]:
    """Turn the extract command's date options into an inclusive range.

    Raises:
        ValidationError: If no range, more than one kind of range, or a malformed date is given.
    """
    chosen = sum([bool(from_date or to_date), this_month, only_yesterday])
    if chosen == 0:
        raise ValidationError(
            "You must specify a date range using --from/--to, --current-month, --yesterday, or use --tasks"
        )
    if chosen > 1:
        raise ValidationError("--from/--to, --current-month and --yesterday are mutually exclusive")

    if this_month:
        return current_month(today)
    if only_yesterday:
        return yesterday(today)

    if not from_date:
        raise ValidationError("--to requires --from")
    start = parse_date_arg(from_date, "From date")
    end = parse_date_arg(to_date, "To date") if to_date else start
    if end < start:
        raise ValidationError(f"To date {end} is before from date {start}")
    return start, end


async def _extract(config: Config, date_range: Optional[tuple[date, date]]) -> ReconcileResult | TaskExtractionResult:
    harvest_credentials = config.harvest_credentials()
    kimai_credentials = config.kimai_credentials() if date_range is None else None

    store = LocalStore(config.database_url, logger=logger)
    try:
        await store.init()
        async with HarvestClient(
            harvest_credentials.access_token,
            harvest_credentials.account_id,
            logger=logger,
        ) as harvest_client:
            if date_range is not None:
                engine = SyncEngine(store, harvest_client=harvest_client, storage=config.storage, logger=logger)
                return await engine.extract_entries(*date_range)

            async with KimaiClient(kimai_credentials.url, kimai_credentials.token, logger=logger) as kimai_client:
                engine = SyncEngine(
                    store,
                    harvest_client=harvest_client,
                    kimai_client=kimai_client,
                    storage=config.storage,
                    logger=logger,
                )
                return await engine.extract_tasks()
    finally:
        logger.info("Closing database connection...")
        await store.close()


async def _import(config: Config, dry_run: bool) -> TransferResult:
    kimai_credentials = config.kimai_credentials()
    day_start = config.day_start

    store = LocalStore(config.database_url, logger=logger)
    try:
        await store.init()
        async with KimaiClient(kimai_credentials.url, kimai_credentials.token, logger=logger) as kimai_client:
            engine = SyncEngine(
                store,
                kimai_client=kimai_client,
                storage=config.storage,
                day_start=day_start,
                logger=logger,
            )
            return await engine.import_entries(dry_run=dry_run)
    finally:
        await store.close()


async def _list_tasks(config: Config) -> list[TaskRecord]:
    store = LocalStore(config.database_url, logger=logger)
    try:
        await store.init()
        return await store.list_tasks()
    finally:
        await store.close()


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(code=1)


@app.command()
def extract(
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYY-MM-DD)."),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYY-MM-DD). Defaults to --from."),
    this_month: bool = typer.Option(False, "--current-month", help="Extract entries for the current month."),
    only_yesterday: bool = typer.Option(False, "--yesterday", help="Extract entries for yesterday."),
    tasks: bool = typer.Option(False, "--tasks", help="Extract Harvest tasks and match them with Kimai activities."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP),
) -> None:
    """Extract time entries or tasks from Harvest into the local store."""
    date_range: Optional[tuple[date, date]] = None
    try:
        if tasks:
            if from_date or to_date or this_month or only_yesterday:
                raise ValidationError("--tasks cannot be combined with a date range")
        else:
            date_range = resolve_date_range(from_date, to_date, this_month, only_yesterday)
    except ValidationError as e:
        _fail(str(e))

    setup_logging(log_level=logging.DEBUG if verbose else None, config_dir=config_dir)
    logger.info(f"Harvest-Kimai Sync v{__version__}")

    try:
        config = _load_config(config_dir)
        result = asyncio.run(_extract(config, date_range))
    except HarvestKimaiSyncError as e:
        logger.error(f"Error in extract: {e}")
        _fail(str(e))
    except Exception as e:
        logger.error(f"Extraction failed: {e}", exc_info=True)
        _fail(str(e))

    table = Table(title="Extraction Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="magenta")
    if isinstance(result, TaskExtractionResult):
        table.add_row("Harvest tasks", str(result.harvest_tasks))
        table.add_row("Kimai activities", str(result.kimai_activities))
        table.add_row("Matched", str(result.matched))
        table.add_row("Unmatched", str(result.unmatched))
    else:
        table.add_row("Inserted", str(result.inserted))
        table.add_row("Updated", str(result.updated))
        table.add_row("Unchanged", str(result.unchanged))
        table.add_row("Failed", str(result.failed))
    console.print(table)


@app.command("import")
def import_entries(
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show the timesheets that would be created without sending them.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP),
) -> None:
    """Import all pending time entries into Kimai."""
    setup_logging(log_level=logging.DEBUG if verbose else None, config_dir=config_dir)
    logger.info(f"Harvest-Kimai Sync v{__version__}")

    try:
        config = _load_config(config_dir)
        result = asyncio.run(_import(config, dry_run))
    except HarvestKimaiSyncError as e:
        logger.error(f"Error in import: {e}")
        _fail(str(e))
    except Exception as e:
        logger.error(f"Import failed: {e}", exc_info=True)
        _fail(str(e))

    if dry_run and result.planned:
        plan = Table(title="Planned Timesheets (dry run)")
        plan.add_column("Harvest ID", style="cyan")
        plan.add_column("Task")
        plan.add_column("Begin", style="green")
        plan.add_column("End", style="green")
        plan.add_column("Project/Activity", style="magenta")
        for planned in result.planned:
            plan.add_row(
                planned.entry.harvest_id,
                planned.entry.task,
                planned.timesheet.begin.isoformat(),
                planned.timesheet.end.isoformat(),
                f"{planned.timesheet.project}/{planned.timesheet.activity}",
            )
        console.print(plan)

    table = Table(title="Import Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="magenta")
    table.add_row("Imported", str(result.imported))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Failed", str(result.failed))
    console.print(table)

    if result.errors:
        console.print("\n[red]Errors:[/red]")
        for error in result.errors:
            console.print(f"  - {error}")


@app.command()
def configure(
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP),
) -> None:
    """Store Harvest and Kimai credentials in the configuration directory."""
    setup_logging(config_dir=config_dir)
    config = Config(config_dir)
    storage = config.storage

    console.print("[bold cyan]Harvest-Kimai Sync Configuration[/bold cyan]")
    console.print()

    console.print("[yellow]Harvest Configuration[/yellow]")
    storage.set_token("HARVEST_ACCESS_TOKEN", Prompt.ask("Enter your Harvest personal access token", password=True))
    storage.set_token("HARVEST_ACCOUNT_ID", Prompt.ask("Enter your Harvest account ID"))
    console.print("[green]✓ Harvest credentials saved[/green]")
    console.print()

    console.print("[yellow]Kimai Configuration[/yellow]")
    storage.set_token("KIMAI_URL", Prompt.ask("Enter your Kimai URL (e.g., 'https://kimai.example.com')"))
    storage.set_token("KIMAI_API_TOKEN", Prompt.ask("Enter your Kimai API token", password=True))
    console.print("[green]✓ Kimai credentials saved[/green]")
    console.print()

    console.print("[cyan]Testing connections...[/cyan]")
    asyncio.run(_test_connections(config))

    console.print("\n[green]Configuration complete![/green]")
    console.print("Run 'harvest-kimai extract --tasks' to match tasks with Kimai activities.")


async def _test_connections(config: Config) -> None:
    try:
        harvest_credentials = config.harvest_credentials()
        async with HarvestClient(harvest_credentials.access_token, harvest_credentials.account_id) as client:
            tasks = await client.fetch_tasks()
        console.print(f"[green]✓ Connected to Harvest (found {len(tasks)} tasks)[/green]")
    except HarvestKimaiSyncError as e:
        console.print(f"[red]✗ Failed to connect to Harvest: {e}[/red]")

    try:
        kimai_credentials = config.kimai_credentials()
        async with KimaiClient(kimai_credentials.url, kimai_credentials.token) as client:
            activities = await client.fetch_activities()
        console.print(f"[green]✓ Connected to Kimai (found {len(activities)} activities)[/green]")
    except HarvestKimaiSyncError as e:
        console.print(f"[red]✗ Failed to connect to Kimai: {e}[/red]")


@app.command()
def mapping(
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP),
) -> None:
    """Show stored Harvest tasks and the Kimai activities they map to."""
    setup_logging(config_dir=config_dir)

    try:
        tasks = asyncio.run(_list_tasks(_load_config(config_dir)))
    except HarvestKimaiSyncError as e:
        _fail(str(e))

    if not tasks:
        console.print("[yellow]No tasks stored yet. Run 'harvest-kimai extract --tasks'.[/yellow]")
        return

    table = Table(title="Task/Activity Mappings")
    table.add_column("Harvest Task", style="cyan")
    table.add_column("Kimai Activity", style="magenta")
    table.add_column("Project/Activity", style="magenta")
    table.add_column("Action", style="yellow")

    for task in tasks:
        if task.is_mapped:
            table.add_row(
                task.name,
                task.kimai_activity_name or "-",
                f"{task.kimai_project_id}/{task.kimai_activity_id}",
                "IMPORT",
            )
        else:
            table.add_row(task.name, "-", "-", "SKIP")

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Harvest-Kimai Sync v{__version__}")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
