"""Inventory records shared between the source snapshot and the destination."""

from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, field_validator

from clpmig_common.constants import SITE_FALLBACKS


def _as_text(value):
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _blank_to_none(value):
    value = _as_text(value)
    if value is not None and not value.strip():
        return None
    return value


Text = Annotated[str, BeforeValidator(_as_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]


class Site(BaseModel):
    """A CloudPanel site. ``id`` is local to the inventory it was read from."""

    id: int
    domain_name: str
    user: OptionalText = None
    user_password: OptionalText = None
    php_version: OptionalText = None
    vhost_template: OptionalText = None
    application: OptionalText = None
    varnish_cache: Optional[int] = None
    type: str = "php"

    @field_validator("varnish_cache", mode="before")
    @classmethod
    def _varnish_flag(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            text = value.strip().lower()
            if not text:
                return None
            if text.isdigit():
                return int(bool(int(text)))
            return 1 if text in ("true", "yes", "on") else 0
        return int(bool(value))

    @property
    def effective_user(self) -> str:
        return self.user or SITE_FALLBACKS["user"]

    @property
    def effective_password(self) -> str:
        return self.user_password or SITE_FALLBACKS["password"]

    @property
    def effective_php_version(self) -> str:
        return self.php_version or SITE_FALLBACKS["php_version"]


class FtpAccount(BaseModel):
    site_id: int
    user_name: str
    home_directory: str


class CronEntry(BaseModel):
    """A scheduled command. Identity is (site, schedule fields, command)."""

    site_id: int
    minute: Text
    hour: Text
    day: Text
    month: Text
    weekday: Text
    command: str

    @property
    def schedule(self) -> str:
        return f"{self.minute} {self.hour} {self.day} {self.month} {self.weekday}"

    def identity(self) -> tuple[str, str, str, str, str, str]:
        return (self.minute, self.hour, self.day, self.month, self.weekday, self.command)


class DatabaseBinding(BaseModel):
    """A (site, database, database user) triple to migrate."""

    site_id: int
    domain_name: str
    site_user: OptionalText = None
    db_name: str
    db_user: str

    @property
    def effective_site_user(self) -> str:
        return self.site_user or SITE_FALLBACKS["user"]
