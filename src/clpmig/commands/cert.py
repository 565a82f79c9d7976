"""SSL certificate issuance via clpctl."""

from __future__ import annotations

import typer
from rich.console import Console

from clpmig_common import CertificateResult
from clpmig.audit import AuditTrail
from clpmig.config import get_config
from clpmig.services.clpctl import ClpCtl

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.command()
def issue(
    domain: str = typer.Option(..., help="Domain to issue a Let's Encrypt certificate for"),
) -> None:
    """Issue a Let's Encrypt certificate for a migrated site."""
    cfg = get_config()
    trail = AuditTrail(cfg.audit_jsonl_path, cfg.audit_db_path)

    with trail.record("cert.issue", target=domain) as event:
        result, tool = ClpCtl(cfg.clpctl_bin).install_certificate(domain)
        event.params["result"] = result.value
        if not result.ok:
            event.fail()

    console.print(tool.output.rstrip())
    if result.ok:
        console.print(f"[green]Certificate issued for {domain}[/green]")
        return
    console.print(f"[red]Certificate issuance failed for {domain} ({result.value})[/red]")
    if result is CertificateResult.DNS_PROBLEM:
        console.print("[yellow]The domain's DNS does not point to this server yet.[/yellow]")
    console.print(f'Retry later with: clpctl lets-encrypt:install:certificate --domainName="{domain}"')
    raise typer.Exit(1)
