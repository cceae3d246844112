"""Pydantic settings for the signing provider resource."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from resources.adapters.signing.component import RESOURCE_COMPONENT_ID


class SigningSettings(BaseModel):
    """Shared secret used to sign actor capabilities."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    secret: str = "replace-me"

    @field_validator("secret", mode="before")
    @classmethod
    def _validate_secret(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            raise ValueError("secret must be non-empty")
        return value


def resolve_signing_settings(settings: ProTrackSettings) -> SigningSettings:
    """Resolve signing settings from ``adapter.signing``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=SigningSettings,
    )
