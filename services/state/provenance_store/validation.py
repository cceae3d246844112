"""Request validation models for the Provenance Store public API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from resources.adapters.signing import ActorCapability
from services.state.provenance_store.domain import EventDraft, UnitDescriptor


class _UnitRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    unit_id: str = Field(min_length=1, max_length=64)


class MintRequest(BaseModel):
    """Validate one mint request payload."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    descriptor: UnitDescriptor
    idempotency_key: str = Field(min_length=1, max_length=128)


class AppendEventRequest(_UnitRequest):
    """Validate one append-event request payload."""

    event: EventDraft
    capability: ActorCapability


class UnitLookupRequest(_UnitRequest):
    """Validate one unit-scoped read request."""
