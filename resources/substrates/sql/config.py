"""Configuration model for the shared SQL substrate."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from resources.substrates.sql.component import RESOURCE_COMPONENT_ID

IN_MEMORY_SQLITE_URL = "sqlite+pysqlite:///:memory:"


class SqlSettings(BaseModel):
    """Runtime settings for constructing SQL engines and sessions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = IN_MEMORY_SQLITE_URL
    echo: bool = False
    pool_pre_ping: bool = True
    health_timeout_seconds: float = Field(default=1.0, gt=0)

    @field_validator("url", mode="before")
    @classmethod
    def _validate_url(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip()
            if normalized == "":
                raise ValueError("url must be non-empty")
            return normalized
        return value

    @property
    def is_sqlite(self) -> bool:
        """Return ``True`` when the URL targets SQLite."""
        return self.url.startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        """Return ``True`` for a process-local SQLite database."""
        return self.is_sqlite and (":memory:" in self.url or self.url.endswith("://"))


def resolve_sql_settings(settings: ProTrackSettings) -> SqlSettings:
    """Resolve SQL substrate settings from ``components.substrate.sql``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(RESOURCE_COMPONENT_ID),
        model=SqlSettings,
    )
