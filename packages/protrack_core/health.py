"""Readiness roll-up across every registered component."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.envelope import Envelope, EnvelopeKind, new_meta
from packages.protrack_shared.manifest import get_registry


class ComponentHealthResult(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str = ""


class CoreHealthResult(BaseModel):
    """``ready`` holds only when every registered service and resource is ready."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    services: dict[str, ComponentHealthResult] = Field(default_factory=dict)
    resources: dict[str, ComponentHealthResult] = Field(default_factory=dict)


def evaluate_core_health(*, components: Mapping[str, object]) -> CoreHealthResult:
    """Probe each registered component through its ``health()`` method, if any.

    A component with no probe is ready. A registered component missing from
    ``components`` is not. A probe that raises marks its component not ready
    and does not stop the other probes.
    """
    registry = get_registry()
    services = {
        str(item.id): probe_component(components.get(str(item.id)))
        for item in registry.list_services()
    }
    resources = {
        str(item.id): probe_component(components.get(str(item.id)))
        for item in registry.list_resources()
    }
    every = [*services.values(), *resources.values()]
    return CoreHealthResult(
        ready=all(result.ready for result in every),
        services=services,
        resources=resources,
    )


def probe_component(component: object | None) -> ComponentHealthResult:
    if component is None:
        return ComponentHealthResult(ready=False, detail="component not instantiated")
    probe = getattr(component, "health", None)
    if not callable(probe):
        return ComponentHealthResult(ready=True, detail="no health probe")

    kwargs: dict[str, Any] = {}
    if "meta" in inspect.signature(probe).parameters:
        kwargs["meta"] = new_meta(
            kind=EnvelopeKind.QUERY, source="core_health", principal="system"
        )
    try:
        reported = probe(**kwargs)
    except Exception as exc:  # noqa: BLE001
        return ComponentHealthResult(ready=False, detail=f"health() raised {type(exc).__name__}")
    ready, detail = readiness_of(reported)
    return ComponentHealthResult(ready=ready, detail=detail or "ok")


def readiness_of(reported: object) -> tuple[bool, str]:
    """Reduce whatever a probe returned to ``(ready, detail)``.

    Probes return a bool, an envelope, a model or a mapping. Mappings and
    models are ready when their ``ready`` flag is true or, lacking one, when
    every ``*_ready`` flag is true.
    """
    if isinstance(reported, bool):
        return reported, "ok" if reported else "not ready"
    if isinstance(reported, Envelope):
        if not reported.ok:
            return False, "; ".join(error.message for error in reported.errors)
        if reported.value is None:
            return True, "ok"
        reported = reported.value

    if isinstance(reported, BaseModel):
        fields = reported.model_dump(mode="python")
    elif isinstance(reported, Mapping):
        fields = dict(reported)
    else:
        return False, "health() returned unsupported result"

    detail = fields.get("detail")
    detail = detail if isinstance(detail, str) else ""
    if isinstance(fields.get("ready"), bool):
        return fields["ready"], detail
    flags = [
        value for key, value in fields.items() if key.endswith("_ready") and isinstance(value, bool)
    ]
    if not flags:
        return False, "health() result missing readiness fields"
    return all(flags), detail
