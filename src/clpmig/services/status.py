"""Per-database status markers (``<db>.status`` files)."""

from __future__ import annotations

import os
from pathlib import Path

from clpmig_common import MigrationStatus


class StatusStore:
    """One short text file per database name.

    Each export worker writes only its own marker, so no locking is needed.
    """

    def __init__(self, directory: Path):
        self.directory = directory

    def path_for(self, db_name: str) -> Path:
        return self.directory / f"{db_name}.status"

    def write(self, db_name: str, status: MigrationStatus) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(db_name)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(status.marker + "\n")
        os.replace(tmp, path)

    def read(self, db_name: str) -> MigrationStatus:
        path = self.path_for(db_name)
        if not path.exists():
            return MigrationStatus.PENDING
        return MigrationStatus.from_marker(path.read_text())

    def is_ready(self, db_name: str) -> bool:
        return self.read(db_name) is MigrationStatus.OK

    def all(self) -> dict[str, MigrationStatus]:
        if not self.directory.is_dir():
            return {}
        return {
            p.name[: -len(".status")]: MigrationStatus.from_marker(p.read_text())
            for p in sorted(self.directory.glob("*.status"))
        }
