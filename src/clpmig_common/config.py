"""Central configuration for a migration run."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from clpmig_common.constants import (
    CLP_INVENTORY_PATH,
    CRON_DIR,
    DEFAULT_MAX_JOBS,
    FTP_GROUP,
    FTP_SERVICE,
    HOME_BASE,
    LOG_DIR,
    NGINX_SITES_DIR,
    SSL_CERT_DIR,
    STATE_DIR,
)


class MigrationSettings(BaseSettings):
    """Runtime configuration resolved once at startup (env prefix ``CLPMIG_``)."""

    model_config = SettingsConfigDict(env_prefix="CLPMIG_", populate_by_name=True)

    # Source host
    ssh_host: str = ""
    ssh_port: int = 22
    ssh_user: str = "root"
    ssh_password: str = ""
    ssh_identity_file: Optional[str] = None
    connect_timeout: int = 10
    command_timeout: Optional[int] = None

    max_jobs: int = Field(
        default=DEFAULT_MAX_JOBS,
        ge=1,
        validation_alias=AliasChoices("CLPMIG_MAX_JOBS", "MAX_JOBS", "max_jobs"),
    )

    remote_inventory_path: Path = CLP_INVENTORY_PATH
    local_inventory_path: Path = CLP_INVENTORY_PATH

    state_dir: Path = STATE_DIR
    log_dir: Path = LOG_DIR

    nginx_sites_dir: Path = NGINX_SITES_DIR
    ssl_cert_dir: Path = SSL_CERT_DIR
    home_base: Path = HOME_BASE
    cron_dir: Path = CRON_DIR

    ftp_group: str = FTP_GROUP
    ftp_service: str = FTP_SERVICE
    clpctl_bin: str = "clpctl"

    skip_existing_databases: bool = False
    cleanup_dumps: bool = False

    @property
    def snapshot_path(self) -> Path:
        return self.state_dir / "db_remote_copy.sq3"

    @property
    def status_dir(self) -> Path:
        return self.state_dir / "status"

    @property
    def staging_dir(self) -> Path:
        return self.state_dir / "dumps"

    @property
    def credentials_path(self) -> Path:
        return self.state_dir / "credentials.log"

    @property
    def audit_db_path(self) -> Path:
        return self.state_dir / "audit.db"

    @property
    def debug_log_path(self) -> Path:
        return self.log_dir / "migration_debug.log"

    @property
    def audit_jsonl_path(self) -> Path:
        return self.log_dir / "audit.jsonl"

    @property
    def uses_password_auth(self) -> bool:
        return bool(self.ssh_password)

    def site_root(self, user: str, domain: str) -> Path:
        """Web root of a site: ``/home/<user>/htdocs/<domain>``."""
        return self.home_base / user / "htdocs" / domain

    def remote_backup_dir(self, user: str) -> str:
        return f"{self.home_base.as_posix()}/{user}/backups"
