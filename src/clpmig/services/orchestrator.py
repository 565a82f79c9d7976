"""Run controller: sequences the per-site steps and the database pipeline."""

from __future__ import annotations

import logging
from typing import Optional

from clpmig_common import RunSummary, Site

from clpmig.context import RunContext
from clpmig.errors import InventoryError, ProvisioningError, RemoteError, SetupError, SystemCommandError
from clpmig.logs import site_logger
from clpmig.services.content import ContentReplicator
from clpmig.services.dbpipeline import DatabasePipeline
from clpmig.services.identity import replicate_cron, replicate_ftp_accounts
from clpmig.services.inventory import SourceInventory
from clpmig.services.provisioner import SiteState, ensure_site, reconcile_metadata

log = logging.getLogger(__name__)


class Migration:
    """One bounded batch job against one source host."""

    def __init__(self, ctx: RunContext, *, max_jobs: Optional[int] = None):
        self.ctx = ctx
        self.content = ContentReplicator(ctx)
        self.pipeline = DatabasePipeline(ctx, max_jobs=max_jobs)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def prepare_state(self) -> None:
        cfg = self.ctx.cfg
        for d in (cfg.state_dir, cfg.status_dir, cfg.staging_dir):
            d.mkdir(parents=True, exist_ok=True)
        self.ctx.credentials.ensure()

    def pull_snapshot(self, *, reuse: bool = False) -> SourceInventory:
        """Copy the source inventory locally (setup-fatal on failure)."""
        cfg = self.ctx.cfg
        snapshot = cfg.snapshot_path
        if reuse and snapshot.is_file():
            log.info("Reusing existing source snapshot %s", snapshot)
        else:
            log.info("Copying source inventory %s from %s", cfg.remote_inventory_path, cfg.ssh_host)
            try:
                self.ctx.remote.fetch(cfg.remote_inventory_path.as_posix(), snapshot)
            except RemoteError as exc:
                raise SetupError(f"Failed to copy source inventory: {exc}") from exc
        try:
            self.ctx.source = SourceInventory(snapshot)
        except InventoryError as exc:
            raise SetupError(str(exc)) from exc
        return self.ctx.source

    def _load_sites(self) -> list[Site]:
        try:
            sites = self.ctx.require_source().php_sites()
        except InventoryError as exc:
            raise SetupError(f"Cannot read sites from source snapshot: {exc}") from exc
        if not sites:
            raise SetupError("No PHP sites found in source snapshot")
        return sites

    # ------------------------------------------------------------------
    # Per-site work
    # ------------------------------------------------------------------

    def migrate_site(self, site: Site) -> bool:
        """Provision, copy content, FTP and cron for one site.

        Returns False when the site could not be provisioned (site-fatal);
        all later failures are warnings.
        """
        slog = site_logger(log, site.domain_name)
        summary = self.ctx.summary
        slog.info("Processing site (source id=%s)", site.id)

        try:
            provisioned = ensure_site(self.ctx, site, slog)
        except ProvisioningError as exc:
            slog.error("%s; skipping site", exc)
            summary.sites_failed += 1
            return False

        reconcile_metadata(self.ctx, site, provisioned, slog)
        if provisioned.state is not SiteState.RECONCILED:
            summary.warnings += 1
        summary.warnings += self.content.replicate(site, slog)
        for step in (replicate_ftp_accounts, replicate_cron):
            try:
                step(self.ctx, site, provisioned, slog)
            except InventoryError as exc:
                slog.warning("%s skipped: %s", step.__name__, exc)
                summary.warnings += 1

        summary.sites_processed += 1
        slog.info("Finished site")
        return True

    def issue_certificates(self, sites: list[Site]) -> None:
        for site in sites:
            slog = site_logger(log, site.domain_name)
            with self.ctx.trail.record("cert.issue", target=site.domain_name) as event:
                result, tool = self.ctx.clpctl.install_certificate(site.domain_name)
                slog.debug("clpctl lets-encrypt output:\n%s", tool.output)
                event.params["result"] = result.value
                if result.ok:
                    self.ctx.summary.certs_issued += 1
                    slog.info("Certificate issued")
                else:
                    event.fail()
                    self.ctx.summary.certs_failed += 1
                    slog.warning("Certificate issuance failed (%s)", result.value)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, *, issue_certs: bool = False) -> RunSummary:
        """Full migration: sites first (sequential), then databases."""
        summary = self.ctx.summary
        with self.ctx.trail.record("run", target=self.ctx.cfg.ssh_host, mode="full"):
            self.prepare_state()
            self.pull_snapshot()
            sites = self._load_sites()
            summary.sites_total = len(sites)
            log.info("Found %d PHP site(s) to migrate", len(sites))

            try:
                self.ctx.system.ensure_group(self.ctx.cfg.ftp_group)
            except SystemCommandError as exc:
                log.warning("Could not ensure group %s: %s", self.ctx.cfg.ftp_group, exc)
                summary.warnings += 1

            migrated: list[Site] = []
            for site in sites:
                if self.migrate_site(site):
                    migrated.append(site)

            self._run_databases()

            if issue_certs:
                self.issue_certificates(migrated)
        return summary

    def migrate_databases(self, *, reuse_snapshot: bool = False) -> RunSummary:
        """Database-only migration against an existing or fresh snapshot."""
        with self.ctx.trail.record("run", target=self.ctx.cfg.ssh_host, mode="databases"):
            self.prepare_state()
            self.pull_snapshot(reuse=reuse_snapshot)
            if not self._run_databases():
                raise SetupError("No sites with databases found in source snapshot")
        return self.ctx.summary

    def _run_databases(self) -> bool:
        try:
            bindings = self.ctx.require_source().database_bindings()
        except InventoryError as exc:
            raise SetupError(f"Cannot read database bindings: {exc}") from exc
        log.info("Found %d database binding(s)", len(bindings))
        if not bindings:
            return False
        self.pipeline.run(bindings)
        return True

