"""Pydantic settings for the fund-transfer rail resource."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from resources.adapters.fund_rail.component import RESOURCE_COMPONENT_ID


class FundRailSettings(BaseModel):
    """Backend selection for the fund-transfer rail."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "sql"] = "sql"


def resolve_fund_rail_settings(settings: ProTrackSettings) -> FundRailSettings:
    """Resolve rail settings from ``adapter.fund_rail``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=FundRailSettings,
    )
