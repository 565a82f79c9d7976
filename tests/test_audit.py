"""Tests for the audit trail."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from unittest.mock import patch

import pytest

from clpmig_common import AuditEvent
from clpmig.audit import AuditTrail, _write_jsonl, _write_sqlite


class TestAuditJSONL:
    def test_write_jsonl(self, tmp_path: Path):
        path = tmp_path / "audit.jsonl"
        event = AuditEvent(action="site.provision", target="a.example.com", actor="tester", run_id="r1")
        _write_jsonl(path, event)

        lines = path.read_text().strip().splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["action"] == "site.provision"
        assert data["run_id"] == "r1"

    def test_append_jsonl(self, tmp_path: Path):
        path = tmp_path / "audit.jsonl"
        for i in range(3):
            _write_jsonl(path, AuditEvent(action=f"test.{i}"))
        assert len(path.read_text().strip().splitlines()) == 3


class TestAuditSQLite:
    def test_write_sqlite(self, tmp_path: Path):
        db_path = tmp_path / "audit.db"
        event = AuditEvent(action="db.import", target="a_db", actor="tester", run_id="r1", host="dest")
        _write_sqlite(db_path, event)

        conn = sqlite3.connect(str(db_path))
        rows = conn.execute("SELECT action, target, actor, run_id, host FROM audit_logs").fetchall()
        conn.close()
        assert rows == [("db.import", "a_db", "tester", "r1", "dest")]


class TestAuditTrail:
    def _trail(self, tmp_path: Path) -> AuditTrail:
        return AuditTrail(tmp_path / "log" / "audit.jsonl", tmp_path / "lib" / "audit.db", run_id="run-1")

    def test_success(self, tmp_path: Path):
        trail = self._trail(tmp_path)
        with trail.record("db.export", target="a_db", site="a.example.com") as event:
            pass

        assert event.result == "success"
        assert event.duration_ms is not None and event.duration_ms >= 0
        data = json.loads(trail.jsonl_path.read_text().strip())
        assert data["action"] == "db.export"
        assert data["params"] == {"site": "a.example.com"}
        assert data["run_id"] == "run-1"

    def test_failure_reraises(self, tmp_path: Path):
        trail = self._trail(tmp_path)
        with pytest.raises(ValueError):
            with trail.record("site.provision", target="a.example.com") as event:
                raise ValueError("clpctl exploded")

        assert event.result == "failure"
        assert event.error == "clpctl exploded"
        data = json.loads(trail.jsonl_path.read_text().strip())
        assert data["result"] == "failure"

    def test_caller_marks_failure(self, tmp_path: Path):
        trail = self._trail(tmp_path)
        with trail.record("db.import", target="a_db") as event:
            event.result = "failure"
        assert json.loads(trail.jsonl_path.read_text().strip())["result"] == "failure"

    def test_broken_sink_does_not_raise(self, tmp_path: Path):
        trail = self._trail(tmp_path)
        with patch("clpmig.audit._write_sqlite", side_effect=sqlite3.OperationalError("disk I/O error")):
            with trail.record("run"):
                pass

    def test_actor_from_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("CLPMIG_ACTOR", "ops-bot")
        assert self._trail(tmp_path).actor == "ops-bot"
