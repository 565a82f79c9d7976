"""Jinja2-based renderer for per-site ``/etc/cron.d`` fragments."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from clpmig_common import CronEntry

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=select_autoescape([]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_cron_fragment(site_user: str, domain: str, entries: list[CronEntry]) -> str:
    """Render a cron.d file. Each line carries the user column cron.d requires."""
    env = _get_env()
    template = env.get_template("cron_fragment.j2")
    return template.render(site_user=site_user, domain=domain, entries=entries)


def cron_fragment_path(cron_dir: Path, site_user: str) -> Path:
    return cron_dir / site_user
