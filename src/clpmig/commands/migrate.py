"""Full and database-only migration commands."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from clpmig_common import RunSummary
from clpmig.config import get_config, with_overrides
from clpmig.context import RunContext
from clpmig.errors import ClpMigError
from clpmig.logs import setup_logging
from clpmig.services import preflight
from clpmig.services.orchestrator import Migration

console = Console()


def print_summary(summary: RunSummary) -> None:
    table = Table(title="Migration Summary")
    table.add_column("Item", style="cyan")
    table.add_column("Count", style="bold")
    for label, value in summary.rows():
        table.add_row(label, value)
    console.print(table)
    console.print(f"Debug log:   {summary.log_path}")
    console.print(f"Credentials: {summary.credentials_path} (mode 600)")


def run(
    max_jobs: Optional[int] = typer.Option(None, "--max-jobs", min=1, help="Parallel export+copy workers"),
    issue_certs: bool = typer.Option(False, "--issue-certs", help="Issue Let's Encrypt certificates afterwards"),
    skip_preflight: bool = typer.Option(False, "--skip-preflight", help="Don't check for required tools"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output on the console"),
) -> None:
    """Migrate all PHP sites, FTP users, cron jobs and databases from the source host."""
    cfg = with_overrides(get_config(), max_jobs=max_jobs)
    setup_logging(cfg.debug_log_path, verbose=verbose)
    try:
        if not skip_preflight:
            preflight.check_tools(cfg)
        ctx = RunContext.from_settings(cfg)
        summary = Migration(ctx).run(issue_certs=issue_certs)
    except ClpMigError as exc:
        console.print(f"[red]Migration aborted:[/red] {exc}")
        raise typer.Exit(exc.exit_code)

    print_summary(summary)
    console.print("\n[green bold]Done![/green bold]")


def databases(
    reuse_snapshot: bool = typer.Option(False, "--reuse-snapshot", help="Use the snapshot from a previous run"),
    max_jobs: Optional[int] = typer.Option(None, "--max-jobs", min=1, help="Parallel export+copy workers"),
    skip_preflight: bool = typer.Option(False, "--skip-preflight", help="Don't check for required tools"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output on the console"),
) -> None:
    """Migrate only the databases (export, copy, verify, create, import)."""
    cfg = with_overrides(get_config(), max_jobs=max_jobs)
    setup_logging(cfg.debug_log_path, verbose=verbose)
    try:
        if not skip_preflight:
            preflight.check_tools(cfg)
        ctx = RunContext.from_settings(cfg)
        summary = Migration(ctx).migrate_databases(reuse_snapshot=reuse_snapshot)
    except ClpMigError as exc:
        console.print(f"[red]Migration aborted:[/red] {exc}")
        raise typer.Exit(exc.exit_code)

    print_summary(summary)
