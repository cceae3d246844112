"""Call metadata carried alongside every service request and response."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packages.protrack_shared.ids import generate_ulid_str


class EnvelopeKind(str, Enum):
    UNSPECIFIED = "unspecified"
    COMMAND = "command"
    QUERY = "query"
    RESULT = "result"


@dataclass(frozen=True)
class EnvelopeMeta:
    """Who is calling, from where, and which trace the call belongs to.

    ``parent_id`` is empty for a root call and names the caller's
    ``envelope_id`` for nested calls made on its behalf.
    """

    envelope_id: str
    trace_id: str
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str
    principal: str


def new_meta(
    *,
    kind: EnvelopeKind,
    source: str,
    principal: str,
    trace_id: str | None = None,
    parent_id: str = "",
    envelope_id: str | None = None,
    timestamp: datetime | None = None,
) -> EnvelopeMeta:
    if timestamp is None:
        stamped = datetime.now(UTC)
    elif timestamp.tzinfo is None:
        stamped = timestamp.replace(tzinfo=UTC)
    else:
        stamped = timestamp.astimezone(UTC)
    return EnvelopeMeta(
        envelope_id=envelope_id or generate_ulid_str(),
        trace_id=trace_id or generate_ulid_str(),
        parent_id=parent_id,
        timestamp=stamped,
        kind=kind,
        source=source,
        principal=principal,
    )


def child_meta(parent: EnvelopeMeta, *, source: str) -> EnvelopeMeta:
    """Metadata for a downstream call issued while serving ``parent``."""
    return new_meta(
        kind=parent.kind,
        source=source,
        principal=parent.principal,
        trace_id=parent.trace_id,
        parent_id=parent.envelope_id,
    )


_NonBlank = Annotated[str, Field(min_length=1)]


class _MetaShape(BaseModel):
    model_config = ConfigDict(extra="forbid")

    envelope_id: _NonBlank
    trace_id: _NonBlank
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: _NonBlank
    principal: _NonBlank


def validate_meta(meta: EnvelopeMeta) -> None:
    """Raise ``ValueError`` naming the first unusable metadata field."""
    try:
        shaped = _MetaShape.model_validate(asdict(meta))
    except ValidationError as exc:
        location = exc.errors()[0].get("loc") or ("metadata",)
        name = str(location[0])
        if name == "kind":
            raise ValueError("metadata.kind must be specified") from None
        raise ValueError(f"metadata.{name} is required") from None
    if shaped.kind is EnvelopeKind.UNSPECIFIED:
        raise ValueError("metadata.kind must be specified")
