"""Per-database migration status and certificate outcomes."""

from __future__ import annotations

from enum import Enum


class MigrationStatus(str, Enum):
    """Durable per-database marker. Only ``OK`` may proceed to create+import."""

    PENDING = "pending"
    EXPORT_FAILED = "export-failed"
    COPY_FAILED = "copy-failed"
    INTEGRITY_FAILED = "integrity-failed"
    OK = "ok"

    @property
    def marker(self) -> str:
        return _MARKERS[self]

    @classmethod
    def from_marker(cls, text: str) -> "MigrationStatus":
        text = text.strip()
        for status, marker in _MARKERS.items():
            if text == marker:
                return status
        # Unknown content never gates an import through
        return cls.PENDING

    @property
    def failed(self) -> bool:
        return self in (
            MigrationStatus.EXPORT_FAILED,
            MigrationStatus.COPY_FAILED,
            MigrationStatus.INTEGRITY_FAILED,
        )


_MARKERS = {
    MigrationStatus.PENDING: "PENDING",
    MigrationStatus.EXPORT_FAILED: "FAIL export",
    MigrationStatus.COPY_FAILED: "FAIL copy",
    MigrationStatus.INTEGRITY_FAILED: "FAIL integrity",
    MigrationStatus.OK: "OK",
}


class CertificateResult(str, Enum):
    ISSUED = "issued"
    DNS_PROBLEM = "dns-problem"
    VALIDATION_FAILED = "validation-failed"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self is CertificateResult.ISSUED
