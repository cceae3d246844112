"""Pydantic settings for verification scoring."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from services.action.verification_scorer.component import SERVICE_COMPONENT_ID


class ScoreDeductions(BaseModel):
    """Points removed from the starting score of 100 per finding."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    missing_name: int = Field(default=10, ge=0, le=100)
    missing_sku: int = Field(default=10, ge=0, le=100)
    missing_manufacturer: int = Field(default=15, ge=0, le=100)
    limited_history: int = Field(default=20, ge=0, le=100)
    stale_unit: int = Field(default=10, ge=0, le=100)
    sla_violation: int = Field(default=0, ge=0, le=100)


class VerificationScorerSettings(BaseModel):
    """Thresholds and deductions used by the scorer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_history_events: int = Field(default=3, ge=0)
    freshness_days: int = Field(default=30, gt=0)
    deductions: ScoreDeductions = Field(default_factory=ScoreDeductions)


def resolve_verification_scorer_settings(
    settings: ProTrackSettings,
) -> VerificationScorerSettings:
    """Resolve settings from ``service.verification_scorer``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=VerificationScorerSettings,
    )
