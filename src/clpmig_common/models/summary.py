"""End-of-run counters."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class RunSummary(BaseModel):
    sites_total: int = 0
    sites_processed: int = 0
    sites_created: int = 0
    sites_existing: int = 0
    sites_failed: int = 0
    warnings: int = 0

    ftp_created: int = 0
    ftp_inserted: int = 0
    cron_inserted: int = 0

    bindings_total: int = 0
    exports_succeeded: int = 0
    exports_failed: int = 0
    databases_created: int = 0
    databases_existing: int = 0
    databases_create_failed: int = 0
    imports_attempted: int = 0
    imports_succeeded: int = 0
    imports_failed: int = 0
    imports_skipped: int = 0

    certs_issued: int = 0
    certs_failed: int = 0

    log_path: Optional[Path] = None
    credentials_path: Optional[Path] = None

    def rows(self) -> list[tuple[str, str]]:
        """Label/value pairs in display order."""
        return [
            ("Sites processed", f"{self.sites_processed}/{self.sites_total}"),
            ("Sites created / existing", f"{self.sites_created} / {self.sites_existing}"),
            ("Sites failed", str(self.sites_failed)),
            ("Step warnings", str(self.warnings)),
            ("FTP accounts created / recorded", f"{self.ftp_created} / {self.ftp_inserted}"),
            ("Cron rows inserted", str(self.cron_inserted)),
            ("Exports succeeded / failed", f"{self.exports_succeeded} / {self.exports_failed}"),
            ("Databases created / existing", f"{self.databases_created} / {self.databases_existing}"),
            ("Database creations failed", str(self.databases_create_failed)),
            ("Imports succeeded / failed", f"{self.imports_succeeded} / {self.imports_failed}"),
            ("Imports skipped", str(self.imports_skipped)),
            ("Certificates issued / failed", f"{self.certs_issued} / {self.certs_failed}"),
        ]
