"""Site creation and metadata reconciliation on the destination."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from clpmig_common import DEFAULT_VHOST_TEMPLATE, Site

from clpmig.context import RunContext
from clpmig.errors import InventoryError, ProvisioningError

log = logging.getLogger(__name__)


class SiteState(str, Enum):
    NEEDS_CREATE = "needs-create"
    CREATED = "created"
    RECONCILED = "reconciled"


@dataclass
class ProvisionedSite:
    domain_name: str
    destination_id: int
    created: bool
    state: SiteState = SiteState.CREATED


def ensure_site(ctx: RunContext, site: Site, slog: logging.LoggerAdapter) -> ProvisionedSite:
    """Create the site with clpctl unless the destination already has it.

    Returns the destination-side id. Raises ProvisioningError when the site
    cannot be created or found; the caller skips the rest of the site.
    """
    domain = site.domain_name
    try:
        existing_id = ctx.destination.find_site_id(domain)
    except InventoryError as exc:
        raise ProvisioningError(f"Cannot look up {domain} on destination: {exc}") from exc

    if existing_id is not None:
        slog.info("Site already exists on destination (id=%s); skipping creation", existing_id)
        ctx.summary.sites_existing += 1
        return ProvisionedSite(domain, existing_id, created=False)

    slog.info("Creating site (PHP %s, user %s)", site.effective_php_version, site.effective_user)
    with ctx.trail.record(
        "site.provision",
        target=domain,
        php_version=site.effective_php_version,
        site_user=site.effective_user,
    ):
        result = ctx.clpctl.site_add_php(
            domain,
            site.effective_php_version,
            site.effective_user,
            site.effective_password,
            vhost_template=DEFAULT_VHOST_TEMPLATE,
        )
        slog.debug("clpctl site:add:php output:\n%s", result.output)
        if not result.ok:
            raise ProvisioningError(
                f"site:add:php failed for {domain} (exit {result.returncode}): {result.output.strip()[:500]}"
            )

    try:
        new_id = ctx.destination.find_site_id(domain)
    except InventoryError as exc:
        raise ProvisioningError(f"Cannot look up {domain} after creation: {exc}") from exc
    if new_id is None:
        raise ProvisioningError(f"{domain} was created but is missing from the destination inventory")

    ctx.summary.sites_created += 1
    slog.info("Site created (destination id=%s)", new_id)
    return ProvisionedSite(domain, new_id, created=True)


def reconcile_metadata(
    ctx: RunContext,
    site: Site,
    provisioned: ProvisionedSite,
    slog: logging.LoggerAdapter,
) -> None:
    """Copy vhost template, application and varnish flag from the snapshot.

    Moves ``provisioned`` to RECONCILED on success; on failure the state is
    left at CREATED and the rest of the site still runs.
    """
    with ctx.trail.record("site.reconcile", target=site.domain_name) as event:
        try:
            ctx.destination.update_site_metadata(
                provisioned.destination_id,
                vhost_template=site.vhost_template,
                application=site.application,
                varnish_cache=site.varnish_cache,
            )
        except InventoryError as exc:
            event.fail(str(exc))
            slog.warning("Failed to update site metadata: %s", exc)
            return

    provisioned.state = SiteState.RECONCILED
    slog.info(
        "Reconciled metadata (template=%s, application=%s, varnish_cache=%s)",
        "source" if site.vhost_template else "kept",
        site.application,
        site.varnish_cache,
    )


def initial_state(ctx: RunContext, domain_name: str) -> SiteState:
    """NEEDS_CREATE when the destination lacks the domain, else CREATED."""
    return SiteState.CREATED if ctx.destination.find_site_id(domain_name) is not None else SiteState.NEEDS_CREATE
