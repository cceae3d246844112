"""Entry point for building ``ProTrackSettings``.

Sources, strongest first: keyword overrides, ``PROTRACK_`` environment
variables with ``__`` nesting, then the YAML file. For example
``PROTRACK_COMPONENTS__SUBSTRATE__SQL__URL`` sets ``components.substrate.sql.url``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic_settings import SettingsConfigDict

from .models import ProTrackSettings


def load_settings(
    *, config_path: str | Path | None = None, **overrides: Any
) -> ProTrackSettings:
    """Build settings; ``config_path`` replaces the default YAML location."""
    if config_path is None:
        return ProTrackSettings(**overrides)
    yaml_file = Path(config_path).expanduser()

    class _Settings(ProTrackSettings):
        model_config = SettingsConfigDict(yaml_file=yaml_file)

    return _Settings(**overrides)
