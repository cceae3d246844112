"""Pydantic settings for SLA evaluation."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from services.action.sla_evaluator.component import SERVICE_COMPONENT_ID


class SlaEvaluatorSettings(BaseModel):
    """Penalty policy parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    penalty_unit: Decimal = Field(default=Decimal("0.1"), ge=0)


def resolve_sla_evaluator_settings(settings: ProTrackSettings) -> SlaEvaluatorSettings:
    """Resolve settings from ``service.sla_evaluator``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=SlaEvaluatorSettings,
    )
