"""CloudPanel inventory access (SQLite).

Two stores share one read contract: the point-in-time snapshot pulled from
the source host (read-only) and the live destination inventory (read-write).
Sites are correlated across them by ``domain_name`` only; numeric ids are
local to each store.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from clpmig_common import SITE_TYPE_PHP, CronEntry, DatabaseBinding, FtpAccount, Site

from clpmig.errors import InventoryError

log = logging.getLogger(__name__)

Record = TypeVar("Record", bound=BaseModel)

_SITE_COLUMNS = """
    s.id, s.domain_name, s.user, s.user_password, p.php_version,
    s.vhost_template, s.application, s.varnish_cache, s.type
"""

_SITES_SQL = f"""
SELECT {_SITE_COLUMNS}
FROM site s
JOIN php_settings p ON s.id = p.site_id
WHERE s.type = ?
ORDER BY s.id
"""

_SITE_BY_DOMAIN_SQL = f"""
SELECT {_SITE_COLUMNS}
FROM site s
LEFT JOIN php_settings p ON s.id = p.site_id
WHERE s.domain_name = ?
"""

_BINDINGS_SQL = """
SELECT s.id AS site_id, s.domain_name, s.user AS site_user, d.name AS db_name, du.user_name AS db_user
FROM site s
JOIN database d ON s.id = d.site_id
JOIN database_user du ON d.id = du.database_id
WHERE s.type = ?
ORDER BY s.id, d.id, du.id
"""


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class _Inventory:
    """Shared read contract over a CloudPanel ``db.sq3`` file."""

    read_only = True

    def __init__(self, path: Path):
        self.path = path

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        if self.read_only:
            uri = f"file:{self.path}?mode=ro"
            conn = sqlite3.connect(uri, uri=True, timeout=30)
        else:
            conn = sqlite3.connect(str(self.path), timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        try:
            with self._connect() as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise InventoryError(f"Query failed on {self.path}: {exc}") from exc

    def _records(self, model: type[Record], rows: list[sqlite3.Row]) -> list[Record]:
        """Build one record per row, skipping rows the model rejects."""
        records = []
        for row in rows:
            try:
                records.append(model(**dict(row)))
            except ValidationError as exc:
                log.warning(
                    "Skipping malformed %s row in %s: %s",
                    model.__name__, self.path, exc.errors(include_url=False),
                )
        return records

    def php_sites(self) -> list[Site]:
        """All PHP sites that have a php_settings row."""
        return self._records(Site, self._query(_SITES_SQL, (SITE_TYPE_PHP,)))

    def site(self, domain_name: str) -> Optional[Site]:
        rows = self._query(_SITE_BY_DOMAIN_SQL, (domain_name,))
        if not rows:
            return None
        try:
            return Site(**dict(rows[0]))
        except ValidationError as exc:
            raise InventoryError(f"Malformed site row for {domain_name} in {self.path}: {exc}") from exc

    def find_site_id(self, domain_name: str) -> Optional[int]:
        rows = self._query("SELECT id FROM site WHERE domain_name = ?", (domain_name,))
        return int(rows[0]["id"]) if rows else None

    def ftp_accounts(self, site_id: int) -> list[FtpAccount]:
        rows = self._query(
            "SELECT site_id, user_name, home_directory FROM ftp_user WHERE site_id = ? ORDER BY id",
            (site_id,),
        )
        return self._records(FtpAccount, rows)

    def cron_entries(self, site_id: int) -> list[CronEntry]:
        rows = self._query(
            "SELECT site_id, minute, hour, day, month, weekday, command "
            "FROM cron_job WHERE site_id = ? ORDER BY id",
            (site_id,),
        )
        return self._records(CronEntry, rows)

    def database_bindings(self) -> list[DatabaseBinding]:
        return self._records(DatabaseBinding, self._query(_BINDINGS_SQL, (SITE_TYPE_PHP,)))

    def database_exists(self, db_name: str) -> bool:
        return bool(self._query("SELECT 1 FROM database WHERE name = ?", (db_name,)))


class SourceInventory(_Inventory):
    """Read-only snapshot of the source host's inventory."""

    def __init__(self, path: Path):
        if not path.is_file():
            raise InventoryError(f"Source snapshot not found: {path}")
        super().__init__(path)


class DestinationInventory(_Inventory):
    """Live inventory on this host. Writes use bound parameters only."""

    read_only = False

    def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        try:
            with self._connect() as conn:
                cur = conn.execute(sql, params)
                conn.commit()
                return cur.rowcount
        except sqlite3.Error as exc:
            raise InventoryError(f"Write failed on {self.path}: {exc}") from exc

    def update_site_metadata(
        self,
        site_id: int,
        *,
        vhost_template: Optional[str],
        application: Optional[str],
        varnish_cache: Optional[int],
    ) -> int:
        """Copy template/application/cache fields onto a destination site.

        Empty application/cache values become NULL. An empty template keeps
        the one clpctl generated at creation.
        """
        return self._execute(
            "UPDATE site SET vhost_template = COALESCE(?, vhost_template), "
            "application = ?, varnish_cache = ? WHERE id = ?",
            (vhost_template or None, application or None, varnish_cache, site_id),
        )

    def ftp_account_exists(self, site_id: int, user_name: str) -> bool:
        return bool(
            self._query(
                "SELECT 1 FROM ftp_user WHERE site_id = ? AND user_name = ?",
                (site_id, user_name),
            )
        )

    def insert_ftp_account(self, site_id: int, account: FtpAccount) -> None:
        now = _now()
        self._execute(
            "INSERT INTO ftp_user (site_id, created_at, updated_at, user_name, home_directory) "
            "VALUES (?, ?, ?, ?, ?)",
            (site_id, now, now, account.user_name, account.home_directory),
        )

    def cron_entry_exists(self, site_id: int, entry: CronEntry) -> bool:
        return bool(
            self._query(
                "SELECT 1 FROM cron_job WHERE site_id = ? AND minute = ? AND hour = ? "
                "AND day = ? AND month = ? AND weekday = ? AND command = ?",
                (site_id, *entry.identity()),
            )
        )

    def insert_cron_entry(self, site_id: int, entry: CronEntry) -> None:
        now = _now()
        self._execute(
            "INSERT INTO cron_job (site_id, created_at, updated_at, minute, hour, day, month, weekday, command) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (site_id, now, now, *entry.identity()),
        )
