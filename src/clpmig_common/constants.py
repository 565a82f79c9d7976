"""Shared constants for the CloudPanel migration tooling."""

from pathlib import Path

# CloudPanel inventory (same path on both hosts)
CLP_INVENTORY_PATH = Path("/home/clp/htdocs/app/data/db.sq3")

# Local state / logging (overridable via MigrationSettings / env vars)
STATE_DIR = Path("/var/lib/clpmig")
LOG_DIR = Path("/var/log/clpmig")

# Web server / system layout
NGINX_SITES_DIR = Path("/etc/nginx/sites-enabled")
SSL_CERT_DIR = Path("/etc/nginx/ssl-certificates")
HOME_BASE = Path("/home")
CRON_DIR = Path("/etc/cron.d")

# FTP
FTP_GROUP = "ftp-user"
FTP_SERVICE = "proftpd"

# Export+copy concurrency
DEFAULT_MAX_JOBS = 3

# Site provisioning
DEFAULT_VHOST_TEMPLATE = "Generic"
SITE_FALLBACKS: dict[str, str] = {
    "php_version": "7.4",
    "user": "defaultuser",
    "password": "defaultpassword",
}

# Only sites of this type are migrated
SITE_TYPE_PHP = "php"
