"""Local OS primitives: users, groups, directories, services."""

from __future__ import annotations

import grp
import logging
import os
import pwd
import subprocess
from pathlib import Path
from typing import Optional

from clpmig.errors import SystemCommandError

log = logging.getLogger(__name__)


def _run(cmd: list[str], *, input: Optional[str] = None) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(cmd, input=input, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as exc:
        # chpasswd input carries the password; never echo it back
        raise SystemCommandError(
            f"Command failed: {cmd[0]} (exit {exc.returncode})\nstderr: {exc.stderr}"
        ) from exc
    except OSError as exc:
        raise SystemCommandError(f"Command failed: {cmd[0]}: {exc}") from exc


class SystemAccounts:
    """Thin wrappers around useradd/usermod/chown/systemctl."""

    def user_exists(self, name: str) -> bool:
        try:
            pwd.getpwnam(name)
        except KeyError:
            return False
        return True

    def group_exists(self, name: str) -> bool:
        try:
            grp.getgrnam(name)
        except KeyError:
            return False
        return True

    def ensure_group(self, name: str) -> None:
        if not self.group_exists(name):
            _run(["groupadd", name])
            log.info("Created group %s", name)

    def create_user(self, name: str, home: str) -> None:
        _run(["adduser", "--disabled-password", "--gecos", "", "--home", home, name])

    def set_password(self, name: str, password: str) -> None:
        _run(["chpasswd"], input=f"{name}:{password}\n")

    def delete_user(self, name: str) -> None:
        """Remove the account only; the home directory is left in place."""
        _run(["userdel", name])

    def add_to_groups(self, name: str, groups: list[str]) -> None:
        for group in groups:
            _run(["usermod", "-aG", group, name])

    def ensure_directory(self, path: Path, owner: str, group: Optional[str] = None) -> None:
        """Create ``path`` if missing and hand it to ``owner:group``."""
        path.mkdir(parents=True, exist_ok=True)
        try:
            os.chown(path, pwd.getpwnam(owner).pw_uid, grp.getgrnam(group or owner).gr_gid)
        except (KeyError, OSError) as exc:
            raise SystemCommandError(f"chown {owner}:{group or owner} {path} failed: {exc}") from exc

    def write_file(self, path: Path, content: str, mode: int = 0o644) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        path.chmod(mode)

    def restart_service(self, name: str) -> None:
        _run(["systemctl", "restart", name])
