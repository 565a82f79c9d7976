"""Shared test fixtures: CloudPanel-like inventories and in-memory fakes."""

from __future__ import annotations

import gzip
import shlex
import shutil
import sqlite3
import threading
import time
from pathlib import Path

import pytest

from clpmig_common import CertificateResult, MigrationSettings, RunSummary
from clpmig.audit import AuditTrail
from clpmig.context import RunContext
from clpmig.errors import RemoteCommandError, TransferError
from clpmig.services.clpctl import CERT_SUCCESS_MARKER, ToolResult
from clpmig.services.credentials import CredentialLog
from clpmig.services.inventory import DestinationInventory, SourceInventory
from clpmig.services.status import StatusStore

SCHEMA = """
CREATE TABLE site (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT,
    updated_at TEXT,
    domain_name TEXT NOT NULL UNIQUE,
    type TEXT NOT NULL DEFAULT 'php',
    user TEXT,
    user_password TEXT,
    vhost_template TEXT,
    application TEXT,
    varnish_cache INTEGER
);
CREATE TABLE php_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    site_id INTEGER NOT NULL,
    php_version TEXT
);
CREATE TABLE database (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    site_id INTEGER NOT NULL,
    name TEXT NOT NULL
);
CREATE TABLE database_user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    database_id INTEGER NOT NULL,
    user_name TEXT NOT NULL
);
CREATE TABLE ftp_user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    site_id INTEGER NOT NULL,
    created_at TEXT,
    updated_at TEXT,
    user_name TEXT NOT NULL,
    home_directory TEXT NOT NULL
);
CREATE TABLE cron_job (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    site_id INTEGER NOT NULL,
    created_at TEXT,
    updated_at TEXT,
    minute TEXT,
    hour TEXT,
    day TEXT,
    month TEXT,
    weekday TEXT,
    command TEXT
);
"""


def create_inventory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def add_site(
    path: Path,
    domain: str,
    *,
    user: str | None = None,
    password: str | None = None,
    php_version: str | None = "8.2",
    site_type: str = "php",
    vhost_template: str | None = None,
    application: str | None = None,
    varnish_cache: int | None = None,
) -> int:
    conn = sqlite3.connect(str(path))
    cur = conn.execute(
        "INSERT INTO site (domain_name, type, user, user_password, vhost_template, application, varnish_cache) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (domain, site_type, user, password, vhost_template, application, varnish_cache),
    )
    site_id = cur.lastrowid
    conn.execute("INSERT INTO php_settings (site_id, php_version) VALUES (?, ?)", (site_id, php_version))
    conn.commit()
    conn.close()
    return site_id


def add_database(path: Path, site_id: int, name: str, *users: str) -> None:
    conn = sqlite3.connect(str(path))
    cur = conn.execute("INSERT INTO database (site_id, name) VALUES (?, ?)", (site_id, name))
    for user in users:
        conn.execute("INSERT INTO database_user (database_id, user_name) VALUES (?, ?)", (cur.lastrowid, user))
    conn.commit()
    conn.close()


def add_ftp_user(path: Path, site_id: int, user_name: str, home: str) -> None:
    conn = sqlite3.connect(str(path))
    conn.execute(
        "INSERT INTO ftp_user (site_id, user_name, home_directory) VALUES (?, ?, ?)",
        (site_id, user_name, home),
    )
    conn.commit()
    conn.close()


def add_cron_job(path: Path, site_id: int, schedule: str, command: str) -> None:
    minute, hour, day, month, weekday = schedule.split()
    conn = sqlite3.connect(str(path))
    conn.execute(
        "INSERT INTO cron_job (site_id, minute, hour, day, month, weekday, command) VALUES (?, ?, ?, ?, ?, ?, ?)",
        (site_id, minute, hour, day, month, weekday, command),
    )
    conn.commit()
    conn.close()


def count_rows(path: Path, table: str) -> int:
    conn = sqlite3.connect(str(path))
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


class FakeRemote:
    """Source host backed by a local directory tree under ``root``."""

    def __init__(self, root: Path):
        self.root = root
        self.commands: list[str] = []
        self.fail_exports: set[str] = set()
        self.fail_fetch: set[str] = set()
        self.corrupt_dumps: set[str] = set()
        self.export_delay = 0.0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def local(self, remote_path: str) -> Path:
        return self.root.joinpath(*Path(remote_path).parts[1:])

    def run(self, command: str) -> str:
        self.commands.append(command)
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.export_delay)
            args = dict(
                token.split("=", 1) for token in shlex.split(command) if token.startswith("--")
            )
            db = args["--databaseName"]
            if db in self.fail_exports:
                raise RemoteCommandError(f"export of {db} failed", returncode=1)
            dump = self.local(args["--file"])
            dump.parent.mkdir(parents=True, exist_ok=True)
            if db in self.corrupt_dumps:
                dump.write_bytes(b"not a gzip stream")
            else:
                with gzip.open(dump, "wb") as f:
                    f.write(f"-- dump of {db}\n".encode())
            return ""
        finally:
            with self._lock:
                self.active -= 1

    def fetch(self, remote_path: str, local_path: Path) -> None:
        src = self.local(remote_path)
        if remote_path in self.fail_fetch or not src.is_file():
            raise TransferError(f"scp {remote_path} failed", returncode=1)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, local_path)

    def sync_tree(self, remote_dir: str, local_dir: Path, *, delete: bool = True, compress: bool = True) -> None:
        src = self.local(remote_dir)
        if not src.is_dir():
            raise TransferError(f"rsync {remote_dir} failed", returncode=23)
        if delete and local_dir.exists():
            shutil.rmtree(local_dir)
        shutil.copytree(src, local_dir, dirs_exist_ok=True)


class FakeClpCtl:
    """clpctl stand-in that writes into the destination inventory like the real one."""

    def __init__(self, inventory_path: Path):
        self.inventory_path = inventory_path
        self.calls: list[tuple] = []
        self.fail_sites: set[str] = set()
        self.fail_databases: set[str] = set()
        self.fail_imports: set[str] = set()
        self.cert_results: dict[str, CertificateResult] = {}

    def site_add_php(self, domain_name, php_version, site_user, site_password, vhost_template="Generic"):
        self.calls.append(("site:add:php", domain_name, php_version, site_user, vhost_template))
        if domain_name in self.fail_sites:
            return ToolResult(1, "Site could not be created")
        site_id = add_site(
            self.inventory_path, domain_name, user=site_user, password=site_password,
            php_version=php_version, vhost_template=vhost_template,
        )
        return ToolResult(0, f"Site {domain_name} ({site_id}) has been created")

    def db_add(self, domain_name, db_name, db_user, db_password):
        self.calls.append(("db:add", domain_name, db_name, db_user))
        if db_name in self.fail_databases:
            return ToolResult(1, "Database could not be created")
        conn = sqlite3.connect(str(self.inventory_path))
        row = conn.execute("SELECT id FROM site WHERE domain_name = ?", (domain_name,)).fetchone()
        conn.close()
        if row is None:
            return ToolResult(1, f"Site {domain_name} not found")
        site_id = row[0]
        add_database(self.inventory_path, site_id, db_name, db_user)
        return ToolResult(0, "Database has been added")

    def db_import(self, db_name, dump_file):
        self.calls.append(("db:import", db_name, dump_file))
        if db_name in self.fail_imports:
            return ToolResult(1, "ERROR 1064 (42000)")
        return ToolResult(0, "Import done")

    def install_certificate(self, domain_name):
        self.calls.append(("lets-encrypt:install:certificate", domain_name))
        result = self.cert_results.get(domain_name, CertificateResult.ISSUED)
        output = CERT_SUCCESS_MARKER if result.ok else "DNS problem: NXDOMAIN"
        return result, ToolResult(0 if result.ok else 1, output)

    def names(self, action: str) -> list:
        return [call[1:] for call in self.calls if call[0] == action]


class FakeSystem:
    """In-memory OS accounts; directories and files are written for real."""

    def __init__(self):
        self.users: set[str] = set()
        self.groups: set[str] = set()
        self.passwords: dict[str, str] = {}
        self.memberships: dict[str, set[str]] = {}
        self.owners: dict[Path, str] = {}
        self.restarted: list[str] = []

    def user_exists(self, name):
        return name in self.users

    def group_exists(self, name):
        return name in self.groups

    def ensure_group(self, name):
        self.groups.add(name)

    def create_user(self, name, home):
        self.users.add(name)

    def set_password(self, name, password):
        self.passwords[name] = password

    def delete_user(self, name):
        self.users.discard(name)
        self.passwords.pop(name, None)

    def add_to_groups(self, name, groups):
        self.memberships.setdefault(name, set()).update(groups)

    def ensure_directory(self, path, owner, group=None):
        path.mkdir(parents=True, exist_ok=True)
        self.owners[path] = owner

    def write_file(self, path, content, mode=0o644):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        path.chmod(mode)

    def restart_service(self, name):
        self.restarted.append(name)


@pytest.fixture
def settings(tmp_path: Path) -> MigrationSettings:
    """MigrationSettings rooted in temp directories."""
    return MigrationSettings(
        ssh_host="source.example.net",
        max_jobs=2,
        state_dir=tmp_path / "state",
        log_dir=tmp_path / "log",
        local_inventory_path=tmp_path / "dest" / "db.sq3",
        nginx_sites_dir=tmp_path / "etc" / "nginx" / "sites-enabled",
        ssl_cert_dir=tmp_path / "etc" / "nginx" / "ssl-certificates",
        home_base=tmp_path / "home",
        cron_dir=tmp_path / "etc" / "cron.d",
    )


@pytest.fixture
def remote(tmp_path: Path) -> FakeRemote:
    return FakeRemote(tmp_path / "source")


@pytest.fixture
def source_inventory(settings: MigrationSettings, remote: FakeRemote) -> Path:
    """Source snapshot: a.example.com and b.example.com (PHP) plus one Node.js site."""
    path = remote.local(settings.remote_inventory_path.as_posix())
    create_inventory(path)

    a_id = add_site(
        path, "a.example.com", user="a_site", password="a-secret", php_version="8.2",
        vhost_template="WordPress", application="wordpress", varnish_cache=1,
    )
    add_database(path, a_id, "a_db", "a_user")
    a_home = settings.site_root("a_site", "a.example.com")
    add_ftp_user(path, a_id, "a_ftp", str(a_home))
    add_cron_job(path, a_id, "*/5 * * * *", "php /home/a_site/htdocs/a.example.com/cron.php")

    b_id = add_site(path, "b.example.com", user="b_site", password="b-secret", php_version=None)
    add_database(path, b_id, "b_db", "b_user")

    add_site(path, "node.example.com", user="node_site", site_type="nodejs")

    # vhost configs, certificates and web roots on the source host
    for domain in ("a.example.com", "b.example.com"):
        conf = remote.local((settings.nginx_sites_dir / f"{domain}.conf").as_posix())
        conf.parent.mkdir(parents=True, exist_ok=True)
        conf.write_text(f"server {{ server_name {domain}; }}\n")
    ssl = remote.local(settings.ssl_cert_dir.as_posix())
    ssl.mkdir(parents=True, exist_ok=True)
    (ssl / "a.example.com.crt").write_text("CERT\n")
    for user, domain in (("a_site", "a.example.com"), ("b_site", "b.example.com")):
        root = remote.local(settings.site_root(user, domain).as_posix())
        root.mkdir(parents=True, exist_ok=True)
        (root / "index.php").write_text(f"<?php echo '{domain}';\n")
    return path


@pytest.fixture
def destination_inventory(settings: MigrationSettings) -> Path:
    create_inventory(settings.local_inventory_path)
    return settings.local_inventory_path


@pytest.fixture
def clpctl(destination_inventory: Path) -> FakeClpCtl:
    return FakeClpCtl(destination_inventory)


@pytest.fixture
def system() -> FakeSystem:
    return FakeSystem()


def make_context(settings, remote, clpctl, system) -> RunContext:
    return RunContext(
        cfg=settings,
        remote=remote,
        destination=DestinationInventory(settings.local_inventory_path),
        clpctl=clpctl,
        system=system,
        credentials=CredentialLog(settings.credentials_path),
        statuses=StatusStore(settings.status_dir),
        trail=AuditTrail(settings.audit_jsonl_path, settings.audit_db_path, run_id="test-run"),
        summary=RunSummary(log_path=settings.debug_log_path, credentials_path=settings.credentials_path),
    )


@pytest.fixture
def ctx(settings, remote, clpctl, system, source_inventory, destination_inventory) -> RunContext:
    """Run context with the source inventory already loaded."""
    context = make_context(settings, remote, clpctl, system)
    context.source = SourceInventory(source_inventory)
    return context
