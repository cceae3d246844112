"""Request validation models for the Escrow Engine public API."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from packages.protrack_shared.time_utils import ensure_utc
from resources.adapters.signing import ActorCapability
from services.action.sla_evaluator.domain import SlaConditions


class CreateEscrowRequest(BaseModel):
    """Validate escrow creation; checks needing the clock or other services run later."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    unit_id: str = Field(min_length=1, max_length=64)
    payer: ActorCapability
    payee: str = Field(min_length=1, max_length=128)
    amount: Decimal = Field(gt=0, allow_inf_nan=False)
    conditions: SlaConditions
    expected_delivery_by: datetime
    shipment_id: str | None = Field(default=None, max_length=128)
    device_ids: tuple[str, ...] = ()

    @field_validator("expected_delivery_by")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_parties(self) -> "CreateEscrowRequest":
        if self.payee == self.payer.actor:
            raise ValueError("payee must differ from payer")
        if any(not item.strip() for item in self.device_ids):
            raise ValueError("device_ids must not contain blank ids")
        return self


class EscrowLookupRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    escrow_id: str = Field(min_length=1, max_length=64)


class ListDueRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    horizon: datetime

    @field_validator("horizon")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)
