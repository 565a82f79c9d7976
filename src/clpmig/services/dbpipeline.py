"""Database export / transfer / verify (parallel) and create / import (sequential)."""

from __future__ import annotations

import gzip
import logging
import zlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from clpmig_common import DatabaseBinding, MigrationStatus

from clpmig.context import RunContext
from clpmig.errors import InventoryError, RemoteError
from clpmig.logs import site_logger
from clpmig.services.clpctl import export_command
from clpmig.services.credentials import generate_password

log = logging.getLogger(__name__)

_CHUNK = 1024 * 1024


def unique_bindings(bindings: list[DatabaseBinding]) -> list[DatabaseBinding]:
    """One unit per database name; extra database users are only logged."""
    seen: dict[str, DatabaseBinding] = {}
    for binding in bindings:
        first = seen.get(binding.db_name)
        if first is None:
            seen[binding.db_name] = binding
        elif first.db_user != binding.db_user:
            log.warning(
                "Database %s has additional user %s; only %s will be provisioned",
                binding.db_name, binding.db_user, first.db_user,
            )
    return list(seen.values())


def verify_dump(path: Path) -> bool:
    """Decompress the whole gzip stream to prove the dump is intact."""
    if not path.is_file() or path.stat().st_size == 0:
        return False
    try:
        with gzip.open(path, "rb") as f:
            while f.read(_CHUNK):
                pass
    except (OSError, EOFError, zlib.error):
        return False
    return True


class DatabasePipeline:
    def __init__(self, ctx: RunContext, *, max_jobs: int | None = None):
        self.ctx = ctx
        self.max_jobs = max_jobs or ctx.cfg.max_jobs

    def staging_file(self, db_name: str) -> Path:
        return self.ctx.cfg.staging_dir / f"{db_name}.sql.gz"

    def remote_dump_file(self, binding: DatabaseBinding) -> str:
        return f"{self.ctx.cfg.remote_backup_dir(binding.effective_site_user)}/{binding.db_name}.sql.gz"

    # ------------------------------------------------------------------
    # Parallel phase
    # ------------------------------------------------------------------

    def _export_copy_verify(self, binding: DatabaseBinding, slog: logging.LoggerAdapter) -> MigrationStatus:
        db = binding.db_name
        remote_file = self.remote_dump_file(binding)
        local_file = self.staging_file(db)

        slog.info("Exporting database %s on source host", db)
        try:
            self.ctx.remote.run(export_command(self.ctx.cfg.clpctl_bin, db, remote_file))
        except RemoteError as exc:
            slog.error("EXPORT FAILED for %s: %s", db, exc)
            return MigrationStatus.EXPORT_FAILED

        slog.info("Export of %s complete; copying dump", db)
        try:
            self.ctx.remote.fetch(remote_file, local_file)
        except (RemoteError, OSError) as exc:
            slog.error("COPY FAILED for %s: %s", db, exc)
            return MigrationStatus.COPY_FAILED

        if not verify_dump(local_file):
            slog.error("INTEGRITY CHECK FAILED for %s (%s)", db, local_file)
            return MigrationStatus.INTEGRITY_FAILED

        slog.info("Export+copy of %s succeeded", db)
        return MigrationStatus.OK

    def export_and_copy(self, binding: DatabaseBinding) -> MigrationStatus:
        """One worker unit: own export, own staging file, own status marker.

        Any unexpected error ends as this database's EXPORT_FAILED marker so
        the other workers keep running.
        """
        db = binding.db_name
        slog = site_logger(log, binding.domain_name)
        self.ctx.statuses.write(db, MigrationStatus.PENDING)
        with self.ctx.trail.record("db.export", target=db, site=binding.domain_name) as event:
            try:
                status = self._export_copy_verify(binding, slog)
            except Exception as exc:
                slog.exception("Unexpected error while exporting %s", db)
                event.fail(f"{type(exc).__name__}: {exc}")
                status = MigrationStatus.EXPORT_FAILED
            event.params["status"] = status.value
            if status is not MigrationStatus.OK:
                event.fail()
        self.ctx.statuses.write(db, status)
        return status

    def export_all(self, bindings: list[DatabaseBinding]) -> dict[str, MigrationStatus]:
        """Run export+copy with at most ``max_jobs`` workers at once."""
        self.ctx.cfg.staging_dir.mkdir(parents=True, exist_ok=True)
        log.info("Starting parallel export+copy of %d database(s) (max %d)", len(bindings), self.max_jobs)
        with ThreadPoolExecutor(max_workers=self.max_jobs, thread_name_prefix="export") as pool:
            futures = {b.db_name: pool.submit(self.export_and_copy, b) for b in bindings}
            results = {db: future.result() for db, future in futures.items()}

        for db, status in results.items():
            if status is MigrationStatus.OK:
                self.ctx.summary.exports_succeeded += 1
            else:
                self.ctx.summary.exports_failed += 1
                log.warning("Export/copy failed for %s (%s); import will be skipped", db, status.value)
        return results

    # ------------------------------------------------------------------
    # Sequential phase
    # ------------------------------------------------------------------

    def _create_database(self, binding: DatabaseBinding, slog: logging.LoggerAdapter) -> bool:
        password = generate_password()
        with self.ctx.trail.record(
            "db.create", target=binding.db_name, site=binding.domain_name, db_user=binding.db_user,
        ) as event:
            result = self.ctx.clpctl.db_add(binding.domain_name, binding.db_name, binding.db_user, password)
            slog.debug("clpctl db:add output:\n%s", result.output)
            if not result.ok:
                event.fail(result.output)
                slog.error(
                    "Failed to create database %s (exit %s): %s",
                    binding.db_name, result.returncode, result.output.strip()[:500],
                )
                return False
        # The database and user exist now; the credential is already valid.
        self.ctx.credentials.append_database(binding.domain_name, binding.db_name, binding.db_user, password)
        self.ctx.summary.databases_created += 1
        slog.info("Created database %s with user %s", binding.db_name, binding.db_user)
        return True

    def import_one(self, binding: DatabaseBinding) -> None:
        db = binding.db_name
        slog = site_logger(log, binding.domain_name)
        summary = self.ctx.summary

        if not self.ctx.statuses.is_ready(db):
            slog.warning("Skipping import for %s (status %s)", db, self.ctx.statuses.read(db).value)
            summary.imports_skipped += 1
            return

        try:
            exists = self.ctx.destination.database_exists(db)
        except InventoryError as exc:
            slog.error("Cannot check destination for database %s: %s", db, exc)
            summary.imports_skipped += 1
            return

        if exists:
            summary.databases_existing += 1
            if self.ctx.cfg.skip_existing_databases:
                slog.info("Database %s already exists on destination; skipping import", db)
                summary.imports_skipped += 1
                return
            slog.warning("Database %s already exists on destination; importing into it", db)
        elif not self._create_database(binding, slog):
            summary.databases_create_failed += 1
            summary.imports_skipped += 1
            return

        dump = self.staging_file(db)
        summary.imports_attempted += 1
        with self.ctx.trail.record("db.import", target=db, site=binding.domain_name) as event:
            if not dump.is_file():
                slog.error("Dump file not found: %s", dump)
                event.fail()
                summary.imports_failed += 1
                return
            slog.info("Importing %s", dump)
            result = self.ctx.clpctl.db_import(db, str(dump))
            slog.debug("clpctl db:import output:\n%s", result.output)
            if not result.ok:
                event.fail(result.output)
                slog.error("Import FAILED for %s (exit %s)", db, result.returncode)
                summary.imports_failed += 1
                return

        summary.imports_succeeded += 1
        slog.info("Import OK for %s", db)
        if self.ctx.cfg.cleanup_dumps:
            dump.unlink(missing_ok=True)

    def import_all(self, bindings: list[DatabaseBinding]) -> None:
        log.info("Creating databases and importing dumps")
        for binding in bindings:
            self.import_one(binding)

    def run(self, bindings: list[DatabaseBinding]) -> None:
        units = unique_bindings(bindings)
        self.ctx.summary.bindings_total += len(units)
        if not units:
            log.info("No databases to migrate")
            return
        self.export_all(units)
        self.import_all(units)
