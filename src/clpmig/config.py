"""CLI configuration: MigrationSettings resolved once per process."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from clpmig_common import MigrationSettings


@lru_cache(maxsize=1)
def get_config() -> MigrationSettings:
    """Return the process-wide MigrationSettings (environment read once)."""
    return MigrationSettings()


def with_overrides(cfg: MigrationSettings, **updates: Any) -> MigrationSettings:
    """Copy of ``cfg`` with the command-line options that were actually given."""
    given = {key: value for key, value in updates.items() if value is not None}
    if not given:
        return cfg
    return cfg.model_copy(update=given)
