"""Tests for MigrationSettings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from clpmig_common import DEFAULT_MAX_JOBS, SITE_FALLBACKS, MigrationSettings
from clpmig.config import with_overrides


class TestMigrationSettings:
    def test_derived_paths(self, settings: MigrationSettings):
        assert settings.snapshot_path == settings.state_dir / "db_remote_copy.sq3"
        assert settings.status_dir == settings.state_dir / "status"
        assert settings.staging_dir == settings.state_dir / "dumps"
        assert settings.credentials_path == settings.state_dir / "credentials.log"
        assert settings.debug_log_path == settings.log_dir / "migration_debug.log"
        assert settings.audit_jsonl_path == settings.log_dir / "audit.jsonl"

    def test_site_root(self, settings: MigrationSettings):
        assert settings.site_root("alice", "a.example.com") == settings.home_base / "alice/htdocs/a.example.com"

    def test_remote_backup_dir(self, settings: MigrationSettings):
        assert settings.remote_backup_dir("alice") == f"{settings.home_base.as_posix()}/alice/backups"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MAX_JOBS", raising=False)
        monkeypatch.delenv("CLPMIG_MAX_JOBS", raising=False)
        cfg = MigrationSettings()
        assert cfg.max_jobs == DEFAULT_MAX_JOBS == 3
        assert cfg.ssh_port == 22
        assert cfg.ssh_user == "root"
        assert cfg.remote_inventory_path == Path("/home/clp/htdocs/app/data/db.sq3")
        assert not cfg.uses_password_auth

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CLPMIG_SSH_HOST", "10.0.0.5")
        monkeypatch.setenv("CLPMIG_SSH_PORT", "2222")
        monkeypatch.setenv("CLPMIG_SSH_PASSWORD", "hunter2")
        cfg = MigrationSettings()
        assert cfg.ssh_host == "10.0.0.5"
        assert cfg.ssh_port == 2222
        assert cfg.uses_password_auth

    def test_plain_max_jobs_env(self, monkeypatch):
        monkeypatch.delenv("CLPMIG_MAX_JOBS", raising=False)
        monkeypatch.setenv("MAX_JOBS", "5")
        assert MigrationSettings().max_jobs == 5

    def test_max_jobs_must_be_positive(self):
        with pytest.raises(ValidationError):
            MigrationSettings(max_jobs=0)


class TestFallbacks:
    def test_named_fallback_table(self):
        assert SITE_FALLBACKS == {
            "php_version": "7.4",
            "user": "defaultuser",
            "password": "defaultpassword",
        }


class TestOverrides:
    def test_only_given_values_applied(self, settings: MigrationSettings):
        cfg = with_overrides(settings, max_jobs=6, ssh_port=None)
        assert cfg.max_jobs == 6
        assert cfg.ssh_port == settings.ssh_port
        assert settings.max_jobs == 2

    def test_nothing_given(self, settings: MigrationSettings):
        assert with_overrides(settings, max_jobs=None) is settings
