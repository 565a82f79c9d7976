"""Custom exceptions for the migration tool."""

from __future__ import annotations

import subprocess
from typing import Optional


class ClpMigError(Exception):
    """Base exception for all migration operations."""

    def __init__(self, message: str, *, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class SetupError(ClpMigError):
    """Unrecoverable setup failure; the whole run stops."""


class RemoteError(ClpMigError):
    """Remote command or transfer against the source host failed."""

    def __init__(self, message: str, *, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class RemoteTimeoutError(RemoteError):
    """Connection or command timed out."""


class RemoteAuthError(RemoteError):
    """Authentication against the source host was rejected."""


class RemoteCommandError(RemoteError):
    """Remote command ran and exited non-zero."""


class TransferError(RemoteError):
    """scp/rsync transfer failed."""


class InventoryError(ClpMigError):
    """Reading or writing a CloudPanel inventory failed."""


class ProvisioningError(ClpMigError):
    """clpctl returned a failure."""


class SystemCommandError(ClpMigError):
    """Local OS account/group/service command failed."""


_AUTH_MARKERS = ("permission denied", "authentication failed", "too many authentication failures")
_TIMEOUT_MARKERS = ("timed out", "connection timeout")

# sshpass exit codes
_SSHPASS_BAD_PASSWORD = 5
_SSHPASS_HOST_KEY = 6


def classify_ssh_failure(
    returncode: int,
    stderr: str,
    *,
    transfer: bool = False,
) -> type[RemoteError]:
    """Map an ssh/scp/rsync/sshpass failure onto the remote error taxonomy."""
    text = (stderr or "").lower()
    if returncode == _SSHPASS_BAD_PASSWORD or any(m in text for m in _AUTH_MARKERS):
        return RemoteAuthError
    if any(m in text for m in _TIMEOUT_MARKERS):
        return RemoteTimeoutError
    if transfer:
        return TransferError
    return RemoteCommandError


def remote_error_from(
    cmd_label: str,
    result: subprocess.CompletedProcess[str],
    *,
    transfer: bool = False,
) -> RemoteError:
    """Build the matching RemoteError for a failed CompletedProcess."""
    stderr = (result.stderr or "").strip()
    exc_type = classify_ssh_failure(result.returncode, stderr, transfer=transfer)
    if result.returncode == _SSHPASS_HOST_KEY:
        stderr = stderr or "host key verification failed"
    return exc_type(
        f"{cmd_label} failed (exit {result.returncode}): {stderr[:500]}",
        returncode=result.returncode,
        output=(result.stdout or "") + (result.stderr or ""),
    )
