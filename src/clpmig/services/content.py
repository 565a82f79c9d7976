"""vhost, SSL and web-root replication from the source host."""

from __future__ import annotations

import logging
from pathlib import Path

from clpmig_common import Site

from clpmig.context import RunContext
from clpmig.errors import RemoteError, SystemCommandError

log = logging.getLogger(__name__)


class ContentReplicator:
    """Idempotent copies; every failure here is a warning for the site."""

    def __init__(self, ctx: RunContext):
        self.ctx = ctx
        self._ssl_synced = False

    def copy_vhost(self, site: Site, slog: logging.LoggerAdapter) -> bool:
        conf = self.ctx.cfg.nginx_sites_dir / f"{site.domain_name}.conf"
        try:
            self.ctx.remote.fetch(conf.as_posix(), conf)
        except (RemoteError, OSError) as exc:
            slog.warning("Failed to copy nginx vhost %s: %s", conf, exc)
            return False
        slog.info("Copied nginx vhost %s", conf)
        return True

    def sync_ssl(self, slog: logging.LoggerAdapter) -> bool:
        """Mirror the SSL certificate store. Runs once per migration run."""
        if self._ssl_synced:
            slog.debug("SSL certificate store already synced this run")
            return True
        ssl_dir = self.ctx.cfg.ssl_cert_dir
        try:
            self.ctx.remote.sync_tree(ssl_dir.as_posix(), ssl_dir, delete=True)
        except (RemoteError, OSError) as exc:
            slog.warning("Failed to sync SSL certificates: %s", exc)
            return False
        self._ssl_synced = True
        slog.info("Synced SSL certificates into %s", ssl_dir)
        return True

    def sync_webroot(self, site: Site, slog: logging.LoggerAdapter) -> bool:
        user = site.effective_user
        root = self.ctx.cfg.site_root(user, site.domain_name)
        try:
            if not root.is_dir():
                slog.info("Creating web root %s", root)
                self.ctx.system.ensure_directory(root, owner=user)
            self.ctx.remote.sync_tree(root.as_posix(), root, delete=True)
        except (RemoteError, SystemCommandError, OSError) as exc:
            slog.warning("Failed to sync site content into %s: %s", root, exc)
            return False
        slog.info("Synced site content into %s", root)
        return True

    def replicate(self, site: Site, slog: logging.LoggerAdapter) -> int:
        """Run all copies for a site; returns the number of failed steps."""
        results = [
            self.copy_vhost(site, slog),
            self.sync_ssl(slog),
            self.sync_webroot(site, slog),
        ]
        return results.count(False)


def local_site_root_exists(ctx: RunContext, site: Site) -> bool:
    return Path(ctx.cfg.site_root(site.effective_user, site.domain_name)).is_dir()
