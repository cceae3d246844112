"""Pydantic settings for the ledger adapter resource."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from resources.adapters.ledger.component import RESOURCE_COMPONENT_ID


class LedgerAdapterSettings(BaseModel):
    """Backend selection for ledger anchoring."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "sql"] = "sql"
    confirm_delay_seconds: float = Field(default=0.0, ge=0)


def resolve_ledger_adapter_settings(settings: ProTrackSettings) -> LedgerAdapterSettings:
    """Resolve adapter settings from ``adapter.ledger``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=LedgerAdapterSettings,
    )
