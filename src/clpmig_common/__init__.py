"""clpmig common: shared models and constants for the CloudPanel migration tool."""

from clpmig_common.constants import (
    CLP_INVENTORY_PATH,
    CRON_DIR,
    DEFAULT_MAX_JOBS,
    DEFAULT_VHOST_TEMPLATE,
    FTP_GROUP,
    FTP_SERVICE,
    HOME_BASE,
    LOG_DIR,
    NGINX_SITES_DIR,
    SITE_FALLBACKS,
    SITE_TYPE_PHP,
    SSL_CERT_DIR,
    STATE_DIR,
)
from clpmig_common.config import MigrationSettings
from clpmig_common.models import (
    AuditEvent,
    CertificateResult,
    CronEntry,
    DatabaseBinding,
    FtpAccount,
    MigrationStatus,
    RunSummary,
    Site,
)

__all__ = [
    "AuditEvent",
    "CLP_INVENTORY_PATH",
    "CRON_DIR",
    "CertificateResult",
    "CronEntry",
    "DEFAULT_MAX_JOBS",
    "DEFAULT_VHOST_TEMPLATE",
    "DatabaseBinding",
    "FTP_GROUP",
    "FTP_SERVICE",
    "FtpAccount",
    "HOME_BASE",
    "LOG_DIR",
    "MigrationSettings",
    "MigrationStatus",
    "NGINX_SITES_DIR",
    "RunSummary",
    "SITE_FALLBACKS",
    "SITE_TYPE_PHP",
    "SSL_CERT_DIR",
    "STATE_DIR",
    "Site",
]
