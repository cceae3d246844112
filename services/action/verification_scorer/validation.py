"""Request validation models for the Verification Scorer public API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.protrack_shared.time_utils import ensure_utc


class ScoreRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    unit_id: str = Field(min_length=1, max_length=64)
    now: datetime | None = None

    @field_validator("now")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else ensure_utc(value)
