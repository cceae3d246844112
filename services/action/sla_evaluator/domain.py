"""Domain contracts for SLA conditions and verdicts."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RequiredLocation(BaseModel):
    """Point and radius every location sample must stay within."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0)


class SlaConditions(BaseModel):
    """Contractual delivery conditions; absent keys are never evaluated.

    Temperatures are in °C; ``max_delivery_time`` is in seconds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_temperature: float | None = None
    max_temperature: float | None = None
    max_delivery_time: int | None = Field(default=None, gt=0)
    required_location: RequiredLocation | None = None

    @model_validator(mode="after")
    def _check_temperature_band(self) -> "SlaConditions":
        if (
            self.min_temperature is not None
            and self.max_temperature is not None
            and self.min_temperature > self.max_temperature
        ):
            raise ValueError("min_temperature must not exceed max_temperature")
        return self


class SLAVerdict(BaseModel):
    """Outcome of reconciling a sample window against conditions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    compliant: bool
    violations: tuple[str, ...] = ()
    penalty_amount: Decimal | None = None
