"""Domain contracts for Provenance Store payloads."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator, model_validator

from packages.protrack_shared.time_utils import ensure_utc

SHIPPED = "Shipped"
RECEIVED = "Received"
CUSTODIAN_KEY = "custodian"
VALUE_KEY = "value"


class UnitDescriptor(BaseModel):
    """Descriptive attributes fixed at mint time.

    ``name``, ``sku`` and ``manufacturer`` may be blank; the verification
    scorer treats blanks as missing information.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    name: str = ""
    sku: str = ""
    batch_id: str = ""
    manufacturer: str = ""
    category: str = ""
    created_at: datetime | None = None
    expiry_at: datetime | None = None
    location: str = ""
    value: Decimal | None = Field(default=None, ge=0)

    @field_validator("created_at", "expiry_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else ensure_utc(value)

    @model_validator(mode="after")
    def _expiry_after_creation(self) -> "UnitDescriptor":
        if (
            self.created_at is not None
            and self.expiry_at is not None
            and self.expiry_at <= self.created_at
        ):
            raise ValueError("expiry_at must be after created_at")
        return self


class EventDraft(BaseModel):
    """Caller-supplied content of one provenance event.

    ``payload["value"]`` updates the unit's current value; on custody events
    ``payload["custodian"]`` names the next custodian.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    kind: str = Field(min_length=1, max_length=64)
    description: str = ""
    location: str = ""
    payload: dict[str, JsonValue] = Field(default_factory=dict)

    @field_validator("payload")
    @classmethod
    def _validate_payload(cls, value: dict[str, JsonValue]) -> dict[str, JsonValue]:
        if VALUE_KEY in value and parse_value(value[VALUE_KEY]) is None:
            raise ValueError("payload.value must be a non-negative number")
        custodian = value.get(CUSTODIAN_KEY)
        if CUSTODIAN_KEY in value and (not isinstance(custodian, str) or not custodian.strip()):
            raise ValueError("payload.custodian must be a non-empty string")
        return value


class ProvenanceEvent(BaseModel):
    """One committed entry in a unit's append-only history."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sequence: int = Field(ge=1)
    kind: str
    description: str
    location: str
    payload: dict[str, JsonValue]
    actor: str
    occurred_at: datetime
    proof_ref: str


class StoredUnit(BaseModel):
    """Persisted unit row: mint-time attributes plus the mint proof."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    idempotency_key: str
    name: str
    sku: str
    batch_id: str
    manufacturer: str
    category: str
    created_at: datetime
    expiry_at: datetime | None
    location: str
    value: Decimal | None
    mint_proof_ref: str


class ProvenanceRecord(BaseModel):
    """A unit's identity, derived current state and full history."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    name: str
    sku: str
    batch_id: str
    manufacturer: str
    category: str
    created_at: datetime
    expiry_at: datetime | None
    current_location: str
    current_value: Decimal | None
    custodian: str
    mint_proof_ref: str
    history: tuple[ProvenanceEvent, ...]


class UnitSnapshot(BaseModel):
    """Current location/value folded from history."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    location: str
    value: Decimal | None
    last_event_at: datetime | None
    custodian: str


class MintReceipt(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    proof_ref: str


class AppendReceipt(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: str
    sequence: int
    proof_ref: str
    occurred_at: datetime


class HealthStatus(BaseModel):
    """Provenance Store and ledger readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    ledger_ready: bool
    detail: str


def parse_value(raw: object) -> Decimal | None:
    """Return ``raw`` as a non-negative ``Decimal``, or ``None`` when it is not one."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


def next_custodian(event: ProvenanceEvent) -> str:
    """Custodian named by a custody event; the event's actor when unnamed."""
    named = event.payload.get(CUSTODIAN_KEY)
    return named if isinstance(named, str) and named else event.actor


def fold_snapshot(
    unit: StoredUnit,
    events: list[ProvenanceEvent] | tuple[ProvenanceEvent, ...],
    *,
    custody_event_kinds: frozenset[str],
) -> UnitSnapshot:
    """Fold history left-to-right over the mint-time values."""
    location = unit.location
    value = unit.value
    custodian = unit.manufacturer
    last_event_at: datetime | None = None
    for event in events:
        if event.location:
            location = event.location
        if VALUE_KEY in event.payload:
            value = parse_value(event.payload[VALUE_KEY])
        if event.kind in custody_event_kinds:
            custodian = next_custodian(event)
        last_event_at = event.occurred_at
    return UnitSnapshot(
        unit_id=unit.unit_id,
        location=location,
        value=value,
        last_event_at=last_event_at,
        custodian=custodian,
    )
