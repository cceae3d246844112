"""Settings tree for a ProTrack process.

``logging`` and ``observability`` are typed here; each component owns a typed
model for its own subtree under ``components.<kind>.<name>`` and resolves it
with ``resolve_component_settings``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "protrack" / "protrack.yaml"

ComponentKind = Literal["service", "adapter", "substrate", "actor"]
COMPONENT_KINDS: tuple[str, ...] = ("service", "adapter", "substrate", "actor")

TModel = TypeVar("TModel", bound=BaseModel)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "protrack"
    environment: str = "dev"


class PublicApiOtelSettings(BaseModel):
    """Tracer, meter and instrument names used by public API instrumentation."""

    tracer_name: str = Field(default="protrack.public_api", min_length=1)
    meter_name: str = Field(default="protrack.public_api", min_length=1)
    calls_metric: str = "protrack_public_api_calls_total"
    duration_metric: str = "protrack_public_api_duration_ms"
    errors_metric: str = "protrack_public_api_errors_total"
    concern_failures_metric: str = "protrack_public_api_concern_failures_total"


class PublicApiObservability(BaseModel):
    otel: PublicApiOtelSettings = Field(default_factory=PublicApiOtelSettings)


class ObservabilitySettings(BaseModel):
    public_api: PublicApiObservability = Field(default_factory=PublicApiObservability)


class ComponentsSettings(BaseModel):
    """Raw per-component mappings, grouped by kind then component name."""

    model_config = ConfigDict(extra="forbid")

    service: dict[str, dict[str, Any]] = Field(default_factory=dict)
    adapter: dict[str, dict[str, Any]] = Field(default_factory=dict)
    substrate: dict[str, dict[str, Any]] = Field(default_factory=dict)
    actor: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _grouped_keys_only(cls, data: Any) -> Any:
        for key in data if isinstance(data, dict) else ():
            kind, _, name = str(key).partition("_")
            if name and kind in COMPONENT_KINDS:
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return data

    def section(self, kind: str, name: str) -> dict[str, Any]:
        return dict(getattr(self, kind).get(name) or {})


class ProTrackSettings(BaseSettings):
    """Root settings: init kwargs beat ``PROTRACK_*`` env vars, which beat YAML."""

    model_config = SettingsConfigDict(
        env_prefix="PROTRACK_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
        yaml_file=DEFAULT_CONFIG_PATH,
        yaml_file_encoding="utf-8",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, YamlConfigSettingsSource(settings_cls)


def resolve_component_settings(
    *,
    settings: ProTrackSettings,
    component_id: str,
    model: type[TModel],
) -> TModel:
    """Validate ``components.<kind>.<name>`` for ``<kind>_<name>`` into ``model``."""
    kind, _, name = component_id.partition("_")
    if not name or kind not in COMPONENT_KINDS:
        raise ValueError(f"component id has no known kind prefix: {component_id}")
    return model.model_validate(settings.components.section(kind, name))
