"""Root Typer application for the clpmig CLI."""

from __future__ import annotations

import typer

from clpmig.commands import cert, migrate, site, status

app = typer.Typer(
    name="clpmig",
    help="Migrate PHP sites, databases, FTP users and cron jobs between CloudPanel hosts.",
    no_args_is_help=True,
)

app.command(name="run")(migrate.run)
app.command(name="databases")(migrate.databases)
app.command(name="status")(status.status)
app.add_typer(site.app, name="sites", help="Inspect sites in the source inventory.")
app.add_typer(cert.app, name="cert", help="SSL certificate issuance.")

if __name__ == "__main__":
    app()
