"""Explicit per-run state handed to every migration component."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from clpmig_common import MigrationSettings, RunSummary

from clpmig.audit import AuditTrail
from clpmig.services.clpctl import ClpCtl
from clpmig.services.credentials import CredentialLog
from clpmig.services.inventory import DestinationInventory, SourceInventory
from clpmig.services.remote import RemoteHost
from clpmig.services.status import StatusStore
from clpmig.services.system import SystemAccounts


@dataclass
class RunContext:
    cfg: MigrationSettings
    remote: RemoteHost
    destination: DestinationInventory
    clpctl: ClpCtl
    system: SystemAccounts
    credentials: CredentialLog
    statuses: StatusStore
    trail: AuditTrail
    source: Optional[SourceInventory] = None
    summary: RunSummary = field(default_factory=RunSummary)

    @classmethod
    def from_settings(cls, cfg: MigrationSettings) -> "RunContext":
        return cls(
            cfg=cfg,
            remote=RemoteHost.from_settings(cfg),
            destination=DestinationInventory(cfg.local_inventory_path),
            clpctl=ClpCtl(cfg.clpctl_bin),
            system=SystemAccounts(),
            credentials=CredentialLog(cfg.credentials_path),
            statuses=StatusStore(cfg.status_dir),
            trail=AuditTrail(cfg.audit_jsonl_path, cfg.audit_db_path),
            summary=RunSummary(
                log_path=cfg.debug_log_path,
                credentials_path=cfg.credentials_path,
            ),
        )

    def require_source(self) -> SourceInventory:
        if self.source is None:
            raise RuntimeError("source snapshot has not been pulled yet")
        return self.source
