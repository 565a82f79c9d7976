"""Write-once credential log and password generation."""

from __future__ import annotations

import os
import secrets
import threading
from datetime import datetime
from pathlib import Path

# 16 random bytes -> 128 bits of entropy
PASSWORD_BYTES = 16


def generate_password() -> str:
    """Return a fresh URL-safe random password."""
    return secrets.token_urlsafe(PASSWORD_BYTES)


class CredentialLog:
    """Append-only, owner-only (0600) log of generated credentials.

    Every record is flushed and fsynced before ``append`` returns, so a
    credential that is already valid on this host survives a later failure.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        os.close(fd)
        os.chmod(self.path, 0o600)

    def _append(self, lines: list[str]) -> None:
        with self._lock:
            self.ensure()
            with open(self.path, "a", encoding="utf-8") as f:
                for line in lines:
                    f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())

    def append_ftp(self, user_name: str, password: str, home: str, domain: str) -> None:
        stamp = datetime.now().isoformat(timespec="seconds")
        self._append([
            f"# {stamp} FTP account for {domain}",
            f"FTP User: {user_name}, Password: {password}, Home: {home}",
        ])

    def append_database(self, domain: str, db_name: str, db_user: str, password: str) -> None:
        stamp = datetime.now().isoformat(timespec="seconds")
        self._append([
            f"# {stamp}",
            f"Database credentials for {domain}:",
            f"DB Name: {db_name}, DB User: {db_user}, DB Password: {password}",
        ])
