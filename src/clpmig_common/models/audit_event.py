"""Audit event model for the migration trail."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

# Tool output attached to failed events is capped at this many characters.
MAX_ERROR_LENGTH = 500


class AuditEvent(BaseModel):
    """One migration step, tagged with the run it belongs to."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_id: str = ""
    host: str = ""
    actor: str = ""
    action: str = ""
    target: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    result: str = "success"
    error: str | None = None
    duration_ms: int | None = None

    @property
    def failed(self) -> bool:
        return self.result == "failure"

    def fail(self, error: str | None = None) -> None:
        """Mark the step failed, keeping the head of any tool output."""
        self.result = "failure"
        if error:
            self.error = error.strip()[:MAX_ERROR_LENGTH]

    def to_jsonl(self) -> str:
        return self.model_dump_json()
