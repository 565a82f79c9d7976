"""FTP account and cron schedule replication."""

from __future__ import annotations

import logging
from pathlib import Path

from clpmig_common import FtpAccount, Site

from clpmig.context import RunContext
from clpmig.errors import InventoryError, SystemCommandError
from clpmig.services.credentials import generate_password
from clpmig.services.cron_renderer import cron_fragment_path, render_cron_fragment
from clpmig.services.provisioner import ProvisionedSite

log = logging.getLogger(__name__)


def _create_ftp_user(
    ctx: RunContext,
    site: Site,
    account: FtpAccount,
    slog: logging.LoggerAdapter,
) -> None:
    """Create the OS account and log its credential.

    If the password cannot be set the account is removed again, so the next
    run sees it as missing and recreates it instead of reconciling an account
    nobody can log in to.
    """
    name = account.user_name
    password = generate_password()
    with ctx.trail.record("ftp.create", target=name, site=site.domain_name):
        ctx.system.create_user(name, account.home_directory)
        try:
            ctx.system.set_password(name, password)
        except SystemCommandError:
            try:
                ctx.system.delete_user(name)
            except SystemCommandError as exc:
                slog.error("FTP user %s has no password and could not be removed: %s", name, exc)
            raise
    ctx.credentials.append_ftp(name, password, account.home_directory, site.domain_name)
    slog.info("Created FTP user %s (home %s)", account.user_name, account.home_directory)


def _reconcile_ftp_user(ctx: RunContext, site: Site, account: FtpAccount) -> None:
    """Home ownership and group membership, applied to new and existing accounts."""
    ctx.system.ensure_directory(Path(account.home_directory), owner=site.effective_user)
    ctx.system.add_to_groups(account.user_name, [site.effective_user, ctx.cfg.ftp_group])


def replicate_ftp_accounts(
    ctx: RunContext,
    site: Site,
    provisioned: ProvisionedSite,
    slog: logging.LoggerAdapter,
) -> None:
    """Recreate the site's FTP accounts; OS existence decides what is new."""
    accounts = ctx.require_source().ftp_accounts(site.id)
    if not accounts:
        slog.info("No FTP users")
        return

    any_created = False
    for account in accounts:
        name = account.user_name
        if ctx.system.user_exists(name):
            slog.info("FTP user %s already exists; reconciling only", name)
        else:
            try:
                _create_ftp_user(ctx, site, account, slog)
            except SystemCommandError as exc:
                slog.warning("Failed to create FTP user %s: %s", name, exc)
                ctx.summary.warnings += 1
                continue
            any_created = True
            ctx.summary.ftp_created += 1

        try:
            _reconcile_ftp_user(ctx, site, account)
        except SystemCommandError as exc:
            slog.warning("Failed to reconcile home/groups for FTP user %s: %s", name, exc)
            ctx.summary.warnings += 1

        try:
            if ctx.destination.ftp_account_exists(provisioned.destination_id, name):
                slog.debug("FTP user %s already recorded in destination inventory", name)
            else:
                ctx.destination.insert_ftp_account(provisioned.destination_id, account)
                ctx.summary.ftp_inserted += 1
                slog.info("Inserted FTP user %s into destination inventory", name)
        except InventoryError as exc:
            slog.warning("Failed to insert FTP user %s into destination inventory: %s", name, exc)
            ctx.summary.warnings += 1

    if any_created:
        try:
            ctx.system.restart_service(ctx.cfg.ftp_service)
            slog.info("Restarted %s", ctx.cfg.ftp_service)
        except SystemCommandError as exc:
            slog.warning("Failed to restart %s: %s", ctx.cfg.ftp_service, exc)
            ctx.summary.warnings += 1


def replicate_cron(
    ctx: RunContext,
    site: Site,
    provisioned: ProvisionedSite,
    slog: logging.LoggerAdapter,
) -> None:
    """Rewrite the site's cron.d fragment and record missing cron rows."""
    entries = ctx.require_source().cron_entries(site.id)
    if not entries:
        slog.info("No cron jobs")
        return

    user = site.effective_user
    cron_file = cron_fragment_path(ctx.cfg.cron_dir, user)
    try:
        ctx.system.write_file(cron_file, render_cron_fragment(user, site.domain_name, entries), mode=0o644)
        slog.info("Wrote %d cron job(s) to %s", len(entries), cron_file)
    except (OSError, SystemCommandError) as exc:
        slog.warning("Failed to write %s: %s", cron_file, exc)
        ctx.summary.warnings += 1

    for entry in entries:
        try:
            if ctx.destination.cron_entry_exists(provisioned.destination_id, entry):
                slog.debug("Cron job already recorded: %s %s", entry.schedule, entry.command)
                continue
            ctx.destination.insert_cron_entry(provisioned.destination_id, entry)
            ctx.summary.cron_inserted += 1
        except InventoryError as exc:
            slog.warning("Failed to insert cron job %r: %s", entry.command, exc)
            ctx.summary.warnings += 1
