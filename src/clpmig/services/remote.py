"""SSH / scp / rsync access to the source CloudPanel host."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Optional

from clpmig_common import MigrationSettings

from clpmig.errors import RemoteCommandError, RemoteTimeoutError, TransferError, remote_error_from

log = logging.getLogger(__name__)


def _run(
    cmd: list[str],
    *,
    env: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        check=False,
        stdin=subprocess.DEVNULL,
        env=env,
        timeout=timeout,
    )


class RemoteHost:
    """Non-interactive command and file-transfer channel to one host.

    Password auth goes through ``sshpass -e`` so the secret never appears in
    the process list; without a password, key auth runs with ``BatchMode``.
    Host keys are accepted on first use and pinned afterwards.
    """

    def __init__(
        self,
        host: str,
        *,
        port: int = 22,
        user: str = "root",
        password: str = "",
        identity_file: Optional[str] = None,
        connect_timeout: int = 10,
        command_timeout: Optional[int] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.identity_file = identity_file
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    @classmethod
    def from_settings(cls, cfg: MigrationSettings) -> "RemoteHost":
        return cls(
            cfg.ssh_host,
            port=cfg.ssh_port,
            user=cfg.ssh_user,
            password=cfg.ssh_password,
            identity_file=cfg.ssh_identity_file,
            connect_timeout=cfg.connect_timeout,
            command_timeout=cfg.command_timeout,
        )

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"

    def ssh_options(self) -> list[str]:
        opts = [
            "-o", "StrictHostKeyChecking=accept-new",
            "-o", f"ConnectTimeout={self.connect_timeout}",
        ]
        if not self.password:
            opts += ["-o", "BatchMode=yes"]
        if self.identity_file:
            opts += ["-i", self.identity_file]
        return opts

    def _wrap(self, cmd: list[str]) -> tuple[list[str], Optional[dict[str, str]]]:
        if not self.password:
            return cmd, None
        env = dict(os.environ)
        env["SSHPASS"] = self.password
        return ["sshpass", "-e", *cmd], env

    def _execute(
        self,
        label: str,
        cmd: list[str],
        *,
        transfer: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        full_cmd, env = self._wrap(cmd)
        log.debug("%s: %s", label, shlex.join(cmd))
        try:
            return _run(full_cmd, env=env, timeout=self.command_timeout)
        except subprocess.TimeoutExpired as exc:
            raise RemoteTimeoutError(
                f"{label} timed out after {self.command_timeout}s on {self.host}"
            ) from exc
        except OSError as exc:
            error_cls = TransferError if transfer else RemoteCommandError
            raise error_cls(
                f"{label} could not be started: {exc}", returncode=127, output=str(exc)
            ) from exc

    def run(self, command: str) -> str:
        """Run a shell command on the host and return its stdout.

        A non-zero exit raises the RemoteError subclass matching the failure.
        """
        cmd = ["ssh", "-p", str(self.port), *self.ssh_options(), "-n", self.target, command]
        result = self._execute("ssh", cmd)
        if result.returncode != 0:
            raise remote_error_from(f"ssh {self.host}", result)
        return result.stdout

    def fetch(self, remote_path: str, local_path: Path) -> None:
        """Copy a single file from the host (overwrites the local file)."""
        local_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            "scp", "-P", str(self.port), *self.ssh_options(),
            f"{self.target}:{remote_path}", str(local_path),
        ]
        result = self._execute("scp", cmd, transfer=True)
        if result.returncode != 0:
            raise remote_error_from(f"scp {remote_path}", result, transfer=True)

    def sync_tree(
        self,
        remote_dir: str,
        local_dir: Path,
        *,
        delete: bool = True,
        compress: bool = True,
    ) -> None:
        """Mirror a remote directory into ``local_dir``.

        ``-a`` keeps ownership and permissions; with ``delete`` files that no
        longer exist on the source are removed locally.
        """
        opts = ["-a"]
        if compress:
            opts.append("-z")
        if delete:
            opts.append("--delete")
        rsh = shlex.join(["ssh", "-p", str(self.port), *self.ssh_options()])
        cmd = [
            "rsync", *opts, "-e", rsh,
            f"{self.target}:{remote_dir.rstrip('/')}/",
            f"{str(local_dir).rstrip('/')}/",
        ]
        result = self._execute("rsync", cmd, transfer=True)
        if result.returncode != 0:
            raise remote_error_from(f"rsync {remote_dir}", result, transfer=True)
