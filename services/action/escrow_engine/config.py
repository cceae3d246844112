"""Pydantic settings for the Escrow Engine and its settlement scheduler."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from services.action.escrow_engine.component import SERVICE_COMPONENT_ID


class SettlementSchedulerSettings(BaseModel):
    """Cadence of the periodic settlement sweep."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval_seconds: float = Field(default=30.0, gt=0)
    lookahead_seconds: float = Field(default=300.0, ge=0)


class EscrowEngineSettings(BaseModel):
    """Escrow Engine runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "sql"] = "sql"
    escrow_account: str = Field(default="protrack-escrow", min_length=1)
    scheduler: SettlementSchedulerSettings = Field(
        default_factory=SettlementSchedulerSettings
    )


def resolve_escrow_engine_settings(settings: ProTrackSettings) -> EscrowEngineSettings:
    """Resolve settings from ``service.escrow_engine``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=EscrowEngineSettings,
    )
