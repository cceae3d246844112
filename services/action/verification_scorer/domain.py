"""Domain contracts for unit verification scores."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

MISSING_NAME = "Missing product name"
MISSING_SKU = "Missing SKU"
MISSING_MANUFACTURER = "Missing manufacturer"
LIMITED_VISIBILITY = "Limited supply chain visibility"
STALE_UNIT = "Product age exceeds recommended timeframe"
SLA_VIOLATIONS = "SLA violations detected in supply chain"


class TrustLevel(str, Enum):
    """Coarse score band shown next to the numeric score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def for_score(cls, score: int) -> "TrustLevel":
        if score >= 90:
            return cls.HIGH
        if score >= 70:
            return cls.MEDIUM
        return cls.LOW


class ScoreReport(BaseModel):
    """Trust score for one unit with the reasons it was lowered."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    score: int = Field(ge=0, le=100)
    level: TrustLevel
    risk_factors: tuple[str, ...] = ()
