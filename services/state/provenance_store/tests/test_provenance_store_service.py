"""Behavior tests for the Provenance Store service."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from packages.protrack_shared.envelope import EnvelopeKind, new_meta
from packages.protrack_shared.errors import codes
from resources.adapters.ledger import InMemoryLedgerAdapter
from resources.adapters.signing import ActorCapability, HmacSigningProvider
from resources.substrates.sql import SharedSqlSubstrate, SqlSettings
from services.state.provenance_store import (
    DefaultProvenanceStoreService,
    EventDraft,
    ProvenanceStoreSettings,
    UnitDescriptor,
)
from services.state.provenance_store.data import (
    InMemoryProvenanceRepository,
    SqlProvenanceRepository,
)
from services.state.transaction_ledger import (
    ActivityKind,
    InMemoryTransactionLedgerService,
    TransactionLedgerSettings,
)

_T0 = datetime(2025, 3, 1, 8, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _meta():
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="operator")


def _build(*, repository=None, page_size: int = 100, clock=None):
    ledger = InMemoryLedgerAdapter()
    signing = HmacSigningProvider(secret="test-secret")
    activity = InMemoryTransactionLedgerService(settings=TransactionLedgerSettings())
    service = DefaultProvenanceStoreService(
        settings=ProvenanceStoreSettings(backend="memory", history_page_size=page_size),
        repository=repository or InMemoryProvenanceRepository(),
        ledger=ledger,
        signing=signing,
        activity=activity,
        clock=clock or _Clock(_T0),
    )
    return service, ledger, signing, activity


def _mint(service, *, key: str = "batch-1", manufacturer: str = "acme"):
    descriptor = UnitDescriptor(
        name="Vaccine lot",
        sku="VX-100",
        batch_id="B-1",
        manufacturer=manufacturer,
        location="Factory",
        value=Decimal("1000"),
    )
    return asyncio.run(
        service.mint(meta=_meta(), descriptor=descriptor, idempotency_key=key)
    )


def _append(service, unit_id: str, capability, *, kind: str, **fields):
    return asyncio.run(
        service.append_event(
            meta=_meta(),
            unit_id=unit_id,
            event=EventDraft(kind=kind, **fields),
            capability=capability,
        )
    )


def test_mint_anchors_unit_with_empty_history() -> None:
    service, ledger, _, activity = _build()

    minted = _mint(service)

    assert minted.ok
    receipt = minted.value
    assert asyncio.run(ledger.confirm(proof_ref=receipt.proof_ref)) is True
    record = service.get_record(meta=_meta(), unit_id=receipt.unit_id).value
    assert record.history == ()
    assert record.mint_proof_ref == receipt.proof_ref
    assert record.custodian == "acme"
    assert record.current_location == "Factory"
    assert record.created_at == _T0
    feed = activity.recent(meta=_meta()).value
    assert feed[0].kind == ActivityKind.MINT
    assert feed[0].reference == receipt.unit_id


def test_custody_chain_updates_snapshot_and_history() -> None:
    """Shipped/Received events should move custody, location and value."""
    clock = _Clock(_T0)
    service, ledger, signing, activity = _build(clock=clock)
    unit_id = _mint(service).value.unit_id

    clock.now = _T0 + timedelta(hours=1)
    shipped = _append(
        service,
        unit_id,
        signing.issue(actor="acme"),
        kind="Shipped",
        location="Port of Rotterdam",
        payload={"custodian": "carrier"},
    )
    clock.now = _T0 + timedelta(hours=30)
    received = _append(
        service,
        unit_id,
        signing.issue(actor="carrier"),
        kind="Received",
        location="Warehouse 9",
        payload={"custodian": "retailer", "value": "950.50"},
    )

    assert shipped.ok and received.ok
    assert (shipped.value.sequence, received.value.sequence) == (1, 2)
    history = service.history(meta=_meta(), unit_id=unit_id).value
    assert [event.kind for event in history] == ["Shipped", "Received"]
    assert [event.actor for event in history] == ["acme", "carrier"]
    snapshot = service.current_snapshot(meta=_meta(), unit_id=unit_id).value
    assert snapshot.location == "Warehouse 9"
    assert snapshot.value == Decimal("950.50")
    assert snapshot.custodian == "retailer"
    assert snapshot.last_event_at == _T0 + timedelta(hours=30)
    assert ledger.verify_chain() is True
    kinds = [entry.kind for entry in activity.recent(meta=_meta()).value]
    assert kinds.count(ActivityKind.TRANSFER) == 2


def test_non_custody_event_keeps_custodian() -> None:
    service, _, signing, _ = _build()
    unit_id = _mint(service).value.unit_id

    inspected = _append(
        service,
        unit_id,
        signing.issue(actor="acme"),
        kind="Inspected",
        payload={"custodian": "someone-else"},
    )

    assert inspected.ok
    assert service.current_snapshot(meta=_meta(), unit_id=unit_id).value.custodian == "acme"


def test_append_to_unknown_unit_fails() -> None:
    service, _, signing, _ = _build()

    result = _append(service, "01JUNKNOWNUNIT000000000000", signing.issue(actor="acme"), kind="Shipped")

    assert result.ok is False
    assert result.error_codes == (codes.UNKNOWN_UNIT,)
    assert service.history(meta=_meta(), unit_id="missing").error_codes == (codes.UNKNOWN_UNIT,)


def test_non_custodian_append_is_stale_actor() -> None:
    service, ledger, signing, _ = _build()
    unit_id = _mint(service).value.unit_id
    entries_before = len(ledger.entries)

    result = _append(service, unit_id, signing.issue(actor="carrier"), kind="Shipped")

    assert result.error_codes == (codes.STALE_ACTOR,)
    assert len(ledger.entries) == entries_before
    assert service.history(meta=_meta(), unit_id=unit_id).value == ()


def test_forged_capability_is_stale_actor() -> None:
    service, _, _, _ = _build()
    unit_id = _mint(service).value.unit_id

    forged = ActorCapability(actor="acme", token="not-a-signature")
    result = _append(service, unit_id, forged, kind="Shipped")

    assert result.error_codes == (codes.STALE_ACTOR,)


def test_blank_manufacturer_unit_accepts_no_appends() -> None:
    service, _, signing, _ = _build()
    unit_id = _mint(service, manufacturer="").value.unit_id

    result = _append(service, unit_id, signing.issue(actor="acme"), kind="Shipped")

    assert result.error_codes == (codes.STALE_ACTOR,)


def test_mint_with_reused_idempotency_key_is_rejected() -> None:
    service, ledger, _, _ = _build()
    first = _mint(service, key="batch-7")
    entries_after_first = len(ledger.entries)

    second = _mint(service, key="batch-7")

    assert second.ok is False
    assert second.error_codes == (codes.DUPLICATE_SKU_BATCH,)
    assert second.value.unit_id == first.value.unit_id
    assert len(ledger.entries) == entries_after_first


def test_ledger_outage_leaves_state_unchanged() -> None:
    service, ledger, signing, _ = _build()
    unit_id = _mint(service).value.unit_id
    ledger.set_available(False)

    appended = _append(service, unit_id, signing.issue(actor="acme"), kind="Shipped")
    minted = _mint(service, key="batch-2")

    assert appended.error_codes == (codes.LEDGER_UNAVAILABLE,)
    assert appended.errors[0].retryable is True
    assert minted.error_codes == (codes.LEDGER_UNAVAILABLE,)
    assert service.history(meta=_meta(), unit_id=unit_id).value == ()

    ledger.set_available(True)
    assert _mint(service, key="batch-2").ok


def test_event_timestamps_never_go_backwards() -> None:
    """A clock that steps back should not reorder history."""
    clock = _Clock(_T0 + timedelta(days=1))
    service, _, signing, _ = _build(clock=clock)
    unit_id = _mint(service).value.unit_id
    capability = signing.issue(actor="acme")

    _append(service, unit_id, capability, kind="Inspected")
    clock.now = _T0
    _append(service, unit_id, capability, kind="Inspected")

    history = service.history(meta=_meta(), unit_id=unit_id).value
    assert history[1].occurred_at >= history[0].occurred_at


def test_iter_history_pages_and_restarts() -> None:
    service, _, signing, _ = _build(page_size=2)
    unit_id = _mint(service).value.unit_id
    capability = signing.issue(actor="acme")
    for index in range(5):
        _append(service, unit_id, capability, kind="Inspected", description=str(index))

    first_pass = [event.sequence for event in service.iter_history(unit_id)]
    second_pass = [event.description for event in service.iter_history(unit_id)]

    assert first_pass == [1, 2, 3, 4, 5]
    assert second_pass == ["0", "1", "2", "3", "4"]


def test_invalid_event_payload_is_rejected() -> None:
    service, _, signing, _ = _build()
    unit_id = _mint(service).value.unit_id

    result = asyncio.run(
        service.append_event(
            meta=_meta(),
            unit_id=unit_id,
            event={"kind": "Inspected", "payload": {"value": -3}},
            capability=signing.issue(actor="acme"),
        )
    )

    assert result.ok is False
    assert result.error_codes == (codes.INVALID_ARGUMENT,)


def test_sql_repository_round_trips_units_and_events() -> None:
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    service, _, signing, _ = _build(repository=SqlProvenanceRepository(substrate))
    unit_id = _mint(service).value.unit_id

    _append(
        service,
        unit_id,
        signing.issue(actor="acme"),
        kind="Shipped",
        location="Dock 4",
        payload={"custodian": "carrier", "temperature_c": 4.5},
    )
    duplicate = _mint(service)

    record = service.get_record(meta=_meta(), unit_id=unit_id).value
    assert record.current_value == Decimal("1000")
    assert record.custodian == "carrier"
    assert record.history[0].payload == {"custodian": "carrier", "temperature_c": 4.5}
    assert record.history[0].occurred_at.tzinfo is not None
    assert duplicate.error_codes == (codes.DUPLICATE_SKU_BATCH,)
    substrate.dispose()


def test_health_reports_ledger_readiness() -> None:
    service, ledger, _, _ = _build()
    assert service.health(meta=_meta()).value.ledger_ready is True
    ledger.set_available(False)
    health = service.health(meta=_meta()).value
    assert health.service_ready is True
    assert health.ledger_ready is False
