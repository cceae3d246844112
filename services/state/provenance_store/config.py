"""Pydantic settings for Provenance Store behavior."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from services.state.provenance_store.component import SERVICE_COMPONENT_ID


class ProvenanceStoreSettings(BaseModel):
    """Provenance Store runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "sql"] = "sql"
    history_page_size: int = Field(default=100, gt=0)
    custody_event_kinds: frozenset[str] = frozenset({"Shipped", "Received"})

    @field_validator("custody_event_kinds")
    @classmethod
    def _require_custody_kinds(cls, value: frozenset[str]) -> frozenset[str]:
        if len(value) == 0:
            raise ValueError("custody_event_kinds must not be empty")
        return value


def resolve_provenance_store_settings(
    settings: ProTrackSettings,
) -> ProvenanceStoreSettings:
    """Resolve settings from ``service.provenance_store``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ProvenanceStoreSettings,
    )
