"""Required-tool checks before a run starts."""

from __future__ import annotations

import shutil

from clpmig_common import MigrationSettings

from clpmig.errors import SetupError


def required_tools(cfg: MigrationSettings) -> list[str]:
    tools = ["ssh", "scp", "rsync", cfg.clpctl_bin]
    if cfg.uses_password_auth:
        tools.append("sshpass")
    return tools


def check_tools(cfg: MigrationSettings) -> None:
    """Raise SetupError listing every required binary missing from PATH."""
    missing = [tool for tool in required_tools(cfg) if shutil.which(tool) is None]
    if missing:
        raise SetupError(f"Required tools not found on PATH: {', '.join(missing)}")
    if not cfg.ssh_host:
        raise SetupError("Source host is not configured (set CLPMIG_SSH_HOST)")
