"""Pydantic settings for OracleIngest behavior."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from services.state.oracle_ingest.component import SERVICE_COMPONENT_ID


class OracleIngestSettings(BaseModel):
    """Admission, verification and retention settings for oracle samples."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "sql"] = "sql"
    clock_skew_tolerance_seconds: int = Field(default=300, ge=0)
    verification_timeout_seconds: float = Field(default=120.0, gt=0)
    window_size: int = Field(default=500, gt=0)


def resolve_oracle_ingest_settings(settings: ProTrackSettings) -> OracleIngestSettings:
    """Resolve settings from ``service.oracle_ingest``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=OracleIngestSettings,
    )
