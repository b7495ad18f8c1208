"""
Main CLI application using Typer.

The external scheduler invokes ``slotsync full-sync`` and ``slotsync delta-sync``
on its own cadence; both commands are safe to run at any time because each
pass checks its own quiet-hours gate.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.graph_authenticator import GraphAuthenticator
from ..adapters.graph_client import GraphCalendarClient
from ..adapters.recruiter_sheet import RecruiterSheet
from ..adapters.slot_store_client import SlotStoreClient
from ..adapters.snapshot_cache import FileSnapshotCache
from ..adapters.state_store import JsonStateStore
from ..adapters.sync_lock import FileSyncLock
from ..config import AppConfig, get_default_config_path
from ..domain.batching import BatchCursor
from ..domain.exceptions import SlotSyncError
from ..domain.schedule import is_quiet_hour
from ..services.delta_sync import DeltaSyncService
from ..services.full_sync import FullSyncService
from ..services.results import SyncResult, SyncStatus

app = typer.Typer(
    name="slotsync",
    help="Keep interview availability slots in sync with recruiter calendars",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Log debug details.")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Only log warnings and errors.")]


def _setup_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)


def _service_kwargs(config: AppConfig) -> dict:
    """Wire the real adapters from configuration."""
    try:
        authenticator = GraphAuthenticator(
            client_id=config.graph.client_id,
            tenant_id=config.graph.tenant_id,
            client_secret=config.graph.resolve_client_secret(),
            authority_url=config.graph.get_authority_url(),
            cache_file=config.state_dir / "token_cache.json",
        )
    except SlotSyncError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    return {
        "recruiter_provider": RecruiterSheet(config.recruiters_file),
        "calendar_client": GraphCalendarClient(authenticator, timezone=config.timezone),
        "slot_store": SlotStoreClient(
            config.slot_store.base_url,
            config.slot_store.resolve_api_token(),
            timezone=config.timezone,
            timeout=config.slot_store.timeout_seconds,
        ),
        "snapshot_cache": FileSnapshotCache(config.cache_dir, config.sync.cache_ttl_seconds),
        "settings": config.sync,
        "event_filter": config.event_filter,
        "timezone": config.timezone,
    }


def _report(result: SyncResult) -> None:
    colour = {
        SyncStatus.COMPLETED: "green",
        SyncStatus.SKIPPED: "yellow",
        SyncStatus.LOCKED: "yellow",
        SyncStatus.FAILED: "red",
    }[result.status]
    console.print(f"[{colour}]{result.summary()}[/{colour}]")
    if result.status == SyncStatus.FAILED:
        raise typer.Exit(1)


@app.command("full-sync")
def full_sync(
    config_file: ConfigOption = None,
    force: Annotated[bool, typer.Option("--force", help="Run even outside quiet hours.")] = False,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
):
    """
    Reconcile the next recruiter batch over the whole sync horizon.
    """
    _setup_logging(verbose, quiet)
    config = _load_config(config_file)

    service = FullSyncService(
        lock=FileSyncLock(config.lock_file),
        batch_store=JsonStateStore(config.state_file),
        **_service_kwargs(config),
    )
    _report(service.run(force=force))


@app.command("delta-sync")
def delta_sync(
    config_file: ConfigOption = None,
    force: Annotated[bool, typer.Option("--force", help="Run even inside quiet hours.")] = False,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
):
    """
    Apply calendar changes since the last snapshot for every recruiter.
    """
    _setup_logging(verbose, quiet)
    config = _load_config(config_file)

    service = DeltaSyncService(**_service_kwargs(config))
    _report(service.run(force=force))


@app.command()
def status(config_file: ConfigOption = None):
    """
    Show the batch cursor and snapshot freshness per recruiter.
    """
    _setup_logging(False, True)
    config = _load_config(config_file)

    try:
        recruiters = RecruiterSheet(config.recruiters_file).load_recruiters()
    except SlotSyncError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    now = pendulum.now(config.timezone)
    in_quiet = is_quiet_hour(now.hour, config.sync.quiet_hours_start, config.sync.quiet_hours_end)
    cursor = BatchCursor.resume(
        JsonStateStore(config.state_file).load_batch(), len(recruiters), config.sync.batch_size
    )
    cache = FileSnapshotCache(config.cache_dir, config.sync.cache_ttl_seconds)
    batch_keys = {r.key for r in cursor.select(recruiters)}

    console.print(
        f"\n[bold]Quiet hours[/bold] {config.sync.quiet_hours_start:02d}:00-{config.sync.quiet_hours_end:02d}:00 "
        f"({'active' if in_quiet else 'inactive'})"
    )
    console.print(f"[bold]Next full-sync batch[/bold] {cursor.current_batch}/{cursor.total_batches}\n")

    table = Table(title=f"{len(recruiters)} recruiter(s)")
    table.add_column("Recruiter", style="cyan")
    table.add_column("Hours")
    table.add_column("Slot", justify="right")
    table.add_column("Stages")
    table.add_column("Snapshot", justify="right")
    table.add_column("Next batch", justify="center")

    for recruiter in recruiters:
        age = cache.age_seconds(recruiter.key)
        if age is None:
            snapshot = "[red]missing[/red]"
        elif age >= config.sync.cache_ttl_seconds:
            snapshot = f"[yellow]stale ({age / 3600:.1f}h)[/yellow]"
        else:
            snapshot = f"{age / 3600:.1f}h"
        table.add_row(
            recruiter.email,
            f"{recruiter.work_start:%H:%M}-{recruiter.work_end:%H:%M}",
            f"{recruiter.slot_length_minutes} min",
            ", ".join(recruiter.stage_ids),
            snapshot,
            "✓" if recruiter.key in batch_keys else "",
        )

    console.print(table)
