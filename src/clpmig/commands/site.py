"""Source site inspection."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from clpmig.config import get_config
from clpmig.context import RunContext
from clpmig.errors import ClpMigError
from clpmig.services.content import local_site_root_exists
from clpmig.services.orchestrator import Migration
from clpmig.services.provisioner import initial_state

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.command(name="list")
def list_sites(
    reuse_snapshot: bool = typer.Option(False, "--reuse-snapshot", help="Use the snapshot from a previous run"),
) -> None:
    """List PHP sites in the source inventory and their state on this host."""
    ctx = RunContext.from_settings(get_config())
    migration = Migration(ctx)
    try:
        migration.prepare_state()
        source = migration.pull_snapshot(reuse=reuse_snapshot)
        sites = source.php_sites()
    except ClpMigError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(exc.exit_code)

    table = Table(title="Source PHP Sites")
    table.add_column("Domain", style="cyan")
    table.add_column("User")
    table.add_column("PHP")
    table.add_column("Destination", style="yellow")
    table.add_column("Web root")

    for site in sites:
        try:
            state = initial_state(ctx, site.domain_name).value
        except ClpMigError:
            state = "unknown"
        table.add_row(
            site.domain_name,
            site.effective_user,
            site.effective_php_version,
            state,
            "yes" if local_site_root_exists(ctx, site) else "no",
        )

    console.print(table)
