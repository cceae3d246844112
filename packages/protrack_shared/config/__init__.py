"""Settings resolution for ProTrack processes."""

from .loader import load_settings
from .models import (
    COMPONENT_KINDS,
    DEFAULT_CONFIG_PATH,
    ProTrackSettings,
    PublicApiOtelSettings,
    resolve_component_settings,
)

__all__ = [
    "COMPONENT_KINDS",
    "DEFAULT_CONFIG_PATH",
    "ProTrackSettings",
    "PublicApiOtelSettings",
    "load_settings",
    "resolve_component_settings",
]
