"""Turn runtime results and failures into CLI output."""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from typing import Any

import typer
from pydantic import BaseModel

from packages.protrack_core import ProTrackDomainError

_COMPONENT_PREFIXES = ("service_", "substrate_", "adapter_")


def to_plain(value: Any) -> Any:
    """Reduce models, dataclasses and scalars to JSON-compatible values.

    Decimals become strings so amounts survive without float rounding.
    """
    if isinstance(value, BaseModel):
        return to_plain(value.model_dump(mode="python"))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_plain(dataclasses.asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(item) for item in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def emit_result(result: Any, *, as_json: bool) -> None:
    data = to_plain(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
    elif data is None:
        typer.echo("ok")
    else:
        typer.echo(render_human(data))


def emit_error(exc: Exception, *, as_json: bool) -> None:
    """Write ``exc`` and its error codes to stderr."""
    codes = list(exc.codes) if isinstance(exc, ProTrackDomainError) else []
    if as_json:
        typer.echo(json.dumps({"error": str(exc), "codes": codes}), err=True)
    elif codes:
        typer.echo(f"error: {exc} [{', '.join(codes)}]", err=True)
    else:
        typer.echo(f"error: {exc}", err=True)


def render_human(data: Any) -> str:
    if isinstance(data, dict):
        if {"ready", "services", "resources"} <= data.keys():
            return render_core_health(data)
        if {"score", "risk_factors"} <= data.keys():
            return render_score(data)
    if isinstance(data, (dict, list)):
        return json.dumps(data, indent=2, sort_keys=True)
    return str(data)


def render_core_health(data: dict[str, Any]) -> str:
    """One headline, then one block per component group."""
    lines = [f"ProTrack: {_label(data.get('ready'))}"]
    for group in ("services", "resources"):
        members: dict[str, Any] = data.get(group) or {}
        lines.append(
            f"{group.title()}: {_label(all(item.get('ready') for item in members.values()))}"
        )
        for component_id in sorted(members):
            item = members[component_id]
            detail = str(item.get("detail") or "").strip()
            suffix = f" ({detail})" if detail else ""
            lines.append(f"  {_display_name(component_id)}: {_label(item.get('ready'))}{suffix}")
    return "\n".join(lines)


def render_score(data: dict[str, Any]) -> str:
    header = f"Score: {data['score']} ({data.get('level', '')})"
    return "\n".join([header, *(f"- {factor}" for factor in data["risk_factors"])])


def _label(ready: object) -> str:
    return "healthy" if ready is True else "degraded"


def _display_name(component_id: str) -> str:
    for prefix in _COMPONENT_PREFIXES:
        if component_id.startswith(prefix):
            component_id = component_id.removeprefix(prefix)
            break
    return component_id.replace("_", " ").title()
