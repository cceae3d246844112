"""Request validation models for the Transaction Ledger public API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from services.state.transaction_ledger.domain import ActivityKind, ActivityStatus


class RecordActivityRequest(BaseModel):
    """Validate one activity record request."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    kind: ActivityKind
    description: str = Field(min_length=1)
    reference: str = ""
    proof_ref: str | None = None
    status: ActivityStatus = ActivityStatus.CONFIRMED


class RecentActivityRequest(BaseModel):
    """Validate one recent-activity query."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    limit: int | None = Field(default=None, gt=0)
