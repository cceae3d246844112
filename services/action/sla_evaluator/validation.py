"""Request validation models for the SLA Evaluator public API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from packages.protrack_shared.time_utils import ensure_utc
from services.action.sla_evaluator.domain import SlaConditions
from services.state.oracle_ingest.domain import StoredSample


class EvaluateRequest(BaseModel):
    """Validate one evaluation request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    conditions: SlaConditions
    samples: tuple[StoredSample, ...] = ()
    now: datetime
    started_at: datetime

    @field_validator("now", "started_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)
