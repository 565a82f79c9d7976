"""clpctl (CloudPanel CLI) wrappers."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass

from clpmig_common import DEFAULT_VHOST_TEMPLATE, CertificateResult

log = logging.getLogger(__name__)

# Substrings clpctl prints for lets-encrypt:install:certificate. Its exit
# status alone is not reliable for this sub-command.
CERT_SUCCESS_MARKER = "Certificate installation was successful"
CERT_NOT_VALIDATED_MARKER = "Domain could not be validated"
CERT_DNS_MARKER = "DNS problem"
CERT_INVALID_RESPONSE_MARKER = "Invalid response"


@dataclass
class ToolResult:
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _run(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        check=False,
        stdin=subprocess.DEVNULL,
    )


def classify_certificate_output(output: str, returncode: int) -> CertificateResult:
    """Translate clpctl certificate output into a definite result.

    The markers clpctl prints win over its exit status, which is not reliable
    for this command. Two cases differ from a plain marker match on purpose:
    any "error" in the output counts as FAILED regardless of case, and output
    with no known marker falls back to the exit status instead of being taken
    as ISSUED.
    """
    if CERT_SUCCESS_MARKER in output:
        return CertificateResult.ISSUED
    if CERT_DNS_MARKER in output:
        return CertificateResult.DNS_PROBLEM
    if CERT_NOT_VALIDATED_MARKER in output or CERT_INVALID_RESPONSE_MARKER in output:
        return CertificateResult.VALIDATION_FAILED
    if "error" in output.lower():
        return CertificateResult.FAILED
    return CertificateResult.ISSUED if returncode == 0 else CertificateResult.FAILED


def export_command(binary: str, db_name: str, dump_file: str) -> str:
    """Shell command that exports a database on the source host."""
    backup_dir = dump_file.rsplit("/", 1)[0] or "/"
    return (
        f"mkdir -p {shlex.quote(backup_dir)} && "
        f"{shlex.quote(binary)} db:export "
        f"--databaseName={shlex.quote(db_name)} --file={shlex.quote(dump_file)}"
    )


class ClpCtl:
    """The local clpctl binary. Every call returns exit status + combined output."""

    def __init__(self, binary: str = "clpctl"):
        self.binary = binary

    def _call(self, *args: str) -> ToolResult:
        cmd = [self.binary, *args]
        # Passwords are passed as arguments; keep them out of the debug log.
        log.debug("clpctl %s", args[0] if args else "")
        try:
            result = _run(cmd)
        except OSError as exc:
            return ToolResult(returncode=127, output=str(exc))
        output = (result.stdout or "") + (result.stderr or "")
        return ToolResult(returncode=result.returncode, output=output)

    def site_add_php(
        self,
        domain_name: str,
        php_version: str,
        site_user: str,
        site_password: str,
        vhost_template: str = DEFAULT_VHOST_TEMPLATE,
    ) -> ToolResult:
        return self._call(
            "site:add:php",
            f"--domainName={domain_name}",
            f"--phpVersion={php_version}",
            f"--vhostTemplate={vhost_template}",
            f"--siteUser={site_user}",
            f"--siteUserPassword={site_password}",
        )

    def db_add(self, domain_name: str, db_name: str, db_user: str, db_password: str) -> ToolResult:
        return self._call(
            "db:add",
            f"--domainName={domain_name}",
            f"--databaseName={db_name}",
            f"--databaseUserName={db_user}",
            f"--databaseUserPassword={db_password}",
        )

    def db_import(self, db_name: str, dump_file: str) -> ToolResult:
        return self._call("db:import", f"--databaseName={db_name}", f"--file={dump_file}")

    def install_certificate(self, domain_name: str) -> tuple[CertificateResult, ToolResult]:
        result = self._call("lets-encrypt:install:certificate", f"--domainName={domain_name}")
        return classify_certificate_output(result.output, result.returncode), result
