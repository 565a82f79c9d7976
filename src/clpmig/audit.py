"""Dual-write audit trail: JSONL file + SQLite database."""

from __future__ import annotations

import getpass
import logging
import os
import socket
import sqlite3
import threading
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from clpmig_common import AuditEvent

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    run_id TEXT NOT NULL,
    host TEXT NOT NULL,
    actor TEXT NOT NULL,
    action TEXT NOT NULL,
    target TEXT NOT NULL DEFAULT '',
    params TEXT NOT NULL DEFAULT '{}',
    result TEXT NOT NULL DEFAULT 'success',
    error TEXT,
    duration_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_audit_run ON audit_logs(run_id);
CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_logs(action);
"""


def _get_actor() -> str:
    return os.environ.get("CLPMIG_ACTOR") or getpass.getuser()


def _init_db(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.executescript(_SCHEMA)
    return conn


def _write_jsonl(path: Path, event: AuditEvent) -> None:
    with open(path, "a") as f:
        f.write(event.to_jsonl() + "\n")


def _write_sqlite(db_path: Path, event: AuditEvent) -> None:
    conn = _init_db(db_path)
    try:
        conn.execute(
            """INSERT INTO audit_logs
               (timestamp, run_id, host, actor, action, target, params, result, error, duration_ms)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.timestamp.isoformat(),
                event.run_id,
                event.host,
                event.actor,
                event.action,
                event.target,
                event.model_dump_json(include={"params"}),
                event.result,
                event.error,
                event.duration_ms,
            ),
        )
        conn.commit()
    finally:
        conn.close()


class AuditTrail:
    """Records migration steps for one run."""

    def __init__(self, jsonl_path: Path, db_path: Path, *, run_id: str | None = None):
        self.jsonl_path = jsonl_path
        self.db_path = db_path
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.host = socket.gethostname()
        self.actor = _get_actor()
        self._lock = threading.Lock()

    def log_event(self, event: AuditEvent) -> None:
        """Write an event to both sinks. A broken sink never stops the migration."""
        try:
            with self._lock:
                self.jsonl_path.parent.mkdir(parents=True, exist_ok=True)
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                _write_jsonl(self.jsonl_path, event)
                _write_sqlite(self.db_path, event)
        except (OSError, sqlite3.Error) as exc:
            log.warning("Audit write failed for %s: %s", event.action, exc)

    @contextmanager
    def record(self, action: str, target: str = "", **params: Any) -> Generator[AuditEvent, None, None]:
        """Context manager that records timing and success/failure."""
        event = AuditEvent(
            run_id=self.run_id,
            host=self.host,
            actor=self.actor,
            action=action,
            target=target,
            params=params,
        )
        start = time.monotonic()
        try:
            yield event
        except Exception as exc:
            event.fail(str(exc))
            raise
        finally:
            event.duration_ms = int((time.monotonic() - start) * 1000)
            self.log_event(event)
