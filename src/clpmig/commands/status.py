"""Per-database status marker report."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from clpmig_common import MigrationStatus
from clpmig.config import get_config
from clpmig.services.status import StatusStore

console = Console()


def status() -> None:
    """Show the export/copy status of every database from the last run."""
    cfg = get_config()
    markers = StatusStore(cfg.status_dir).all()
    if not markers:
        console.print(f"No status markers in {cfg.status_dir}.")
        return

    table = Table(title="Database Export Status")
    table.add_column("Database", style="cyan")
    table.add_column("Status")
    for db_name, value in markers.items():
        if value is MigrationStatus.OK:
            style = "green"
        elif value.failed:
            style = "red"
        else:
            style = "yellow"
        table.add_row(db_name, f"[{style}]{value.value}[/{style}]")
    console.print(table)
