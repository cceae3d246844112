"""Domain contracts for Transaction Ledger payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ActivityKind(str, Enum):
    """Categories shown in the activity feed."""

    MINT = "mint"
    TRANSFER = "transfer"
    ESCROW = "escrow"
    IOT_DATA = "iot_data"
    GPS_DATA = "gps_data"
    SLA_VIOLATION = "sla_violation"


class ActivityStatus(str, Enum):
    """Confirmation state of the mirrored operation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ActivityEntry(BaseModel):
    """One mirrored ledger operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry_id: str
    kind: ActivityKind
    description: str
    reference: str
    proof_ref: str | None
    status: ActivityStatus
    recorded_at: datetime
