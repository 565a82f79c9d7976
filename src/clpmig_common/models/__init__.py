"""Shared Pydantic models."""

from clpmig_common.models.audit_event import AuditEvent
from clpmig_common.models.site import CronEntry, DatabaseBinding, FtpAccount, Site
from clpmig_common.models.status import CertificateResult, MigrationStatus
from clpmig_common.models.summary import RunSummary

__all__ = [
    "AuditEvent",
    "CertificateResult",
    "CronEntry",
    "DatabaseBinding",
    "FtpAccount",
    "MigrationStatus",
    "RunSummary",
    "Site",
]
