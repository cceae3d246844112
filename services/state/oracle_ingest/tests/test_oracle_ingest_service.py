"""Behavior tests for the OracleIngest service."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from packages.protrack_shared.envelope import EnvelopeKind, new_meta
from packages.protrack_shared.errors import codes
from packages.protrack_shared.time_utils import to_unix_seconds
from resources.adapters.ledger import InMemoryLedgerAdapter
from resources.substrates.sql import SharedSqlSubstrate, SqlSettings
from services.state.oracle_ingest import (
    DefaultOracleIngestService,
    LocationSample,
    OracleIngestSettings,
    SampleStatus,
    SensorSample,
    SensorType,
)
from services.state.oracle_ingest.data import (
    InMemorySampleRepository,
    SqlSampleRepository,
)
from services.state.transaction_ledger import (
    ActivityKind,
    ActivityStatus,
    InMemoryTransactionLedgerService,
    TransactionLedgerSettings,
)

_T0 = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
_NOW = to_unix_seconds(_T0)


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _meta():
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="reporter")


def _build(*, repository=None, clock=None, **overrides):
    ledger = InMemoryLedgerAdapter()
    activity = InMemoryTransactionLedgerService(settings=TransactionLedgerSettings())
    service = DefaultOracleIngestService(
        settings=OracleIngestSettings(backend="memory", **overrides),
        repository=repository or InMemorySampleRepository(),
        ledger=ledger,
        activity=activity,
        clock=clock or _Clock(_T0),
    )
    return service, ledger, activity


def _temperature(value: float, *, observed_at: int = _NOW - 60, device_id: str = "dev-1"):
    return SensorSample(
        device_id=device_id,
        sensor_type=SensorType.TEMPERATURE,
        value=value,
        unit="°C",
        observed_at=observed_at,
    )


def _submit_and_verify(service, sample) -> str:
    sample_id = service.submit(meta=_meta(), sample=sample).value.sample_id
    outcome = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id))
    assert outcome.ok
    return sample_id


def test_submit_admits_sample_as_pending() -> None:
    service, _, activity = _build()

    receipt = service.submit(meta=_meta(), sample=_temperature(5.0))

    assert receipt.ok
    assert receipt.value.accepted is True
    stored = service.get_sample(meta=_meta(), sample_id=receipt.value.sample_id).value
    assert stored.status == SampleStatus.PENDING
    assert stored.verified is False
    entry = activity.recent(meta=_meta()).value[0]
    assert (entry.kind, entry.status) == (ActivityKind.IOT_DATA, ActivityStatus.PENDING)


def test_future_sample_is_rejected_with_receipt() -> None:
    """A sample observed one hour ahead should never be admitted."""
    service, _, _ = _build()

    result = service.submit(meta=_meta(), sample=_temperature(5.0, observed_at=_NOW + 3600))

    assert result.ok is False
    assert result.error_codes == (codes.SAMPLE_REJECTED,)
    assert result.value.accepted is False
    assert "future" in result.value.reason
    assert service.health(meta=_meta()).value.pending_samples == 0


def test_duplicate_observation_is_rejected() -> None:
    service, _, _ = _build()
    assert service.submit(meta=_meta(), sample=_temperature(5.0)).ok

    duplicate = service.submit(meta=_meta(), sample=_temperature(6.0))

    assert duplicate.error_codes == (codes.SAMPLE_REJECTED,)
    assert "duplicate" in duplicate.errors[0].message
    assert duplicate.errors[0].metadata["source_key"] == "device:dev-1"


def test_malformed_sample_is_invalid_argument() -> None:
    service, _, _ = _build()

    result = service.submit(
        meta=_meta(),
        sample={"kind": "sensor", "device_id": "dev-1", "sensor_type": "smell", "value": 1, "observed_at": _NOW},
    )

    assert result.error_codes == (codes.INVALID_ARGUMENT,)


def test_verify_anchors_and_marks_verified() -> None:
    service, ledger, activity = _build()
    sample_id = _submit_and_verify(service, _temperature(5.0))

    stored = service.get_sample(meta=_meta(), sample_id=sample_id).value
    assert stored.status == SampleStatus.VERIFIED
    assert asyncio.run(ledger.confirm(proof_ref=stored.proof_ref)) is True
    assert activity.recent(meta=_meta()).value[0].status == ActivityStatus.CONFIRMED

    again = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id))
    assert again.value.proof_ref == stored.proof_ref
    assert len(ledger.entries) == 1


def test_negative_confirmation_fails_closed() -> None:
    service, ledger, _ = _build()
    sample_id = service.submit(meta=_meta(), sample=_temperature(12.0)).value.sample_id

    original_commit = ledger.commit

    async def _commit_and_reject(*, payload):
        proof_ref = await original_commit(payload=payload)
        ledger.reject(proof_ref)
        return proof_ref

    ledger.commit = _commit_and_reject
    outcome = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id)).value

    assert outcome.verified is False
    assert outcome.status == SampleStatus.FAILED
    assert service.verified_window(meta=_meta(), device_ids=["dev-1"]).value == ()


def test_confirmation_timeout_fails_closed() -> None:
    service, ledger, _ = _build(verification_timeout_seconds=0.05)
    ledger.set_confirm_delay(1.0)
    sample_id = service.submit(meta=_meta(), sample=_temperature(5.0)).value.sample_id

    outcome = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id)).value

    assert outcome.status == SampleStatus.FAILED
    assert outcome.proof_ref is None


def test_ledger_outage_keeps_sample_pending_for_retry() -> None:
    service, ledger, _ = _build()
    sample_id = service.submit(meta=_meta(), sample=_temperature(5.0)).value.sample_id
    ledger.set_available(False)

    failed = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id))

    assert failed.error_codes == (codes.LEDGER_UNAVAILABLE,)
    assert service.get_sample(meta=_meta(), sample_id=sample_id).value.status == SampleStatus.PENDING

    ledger.set_available(True)
    retried = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id))
    assert retried.value.status == SampleStatus.VERIFIED


def test_confirm_outage_reuses_committed_anchor_on_retry() -> None:
    service, ledger, _ = _build()
    sample_id = service.submit(meta=_meta(), sample=_temperature(5.0)).value.sample_id

    original_confirm = ledger.confirm
    calls = {"confirm": 0}

    async def _confirm_fails_once(*, proof_ref):
        calls["confirm"] += 1
        if calls["confirm"] == 1:
            raise ConnectionError("node unreachable")
        return await original_confirm(proof_ref=proof_ref)

    ledger.confirm = _confirm_fails_once

    failed = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id))
    pending = service.get_sample(meta=_meta(), sample_id=sample_id).value
    retried = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id)).value

    assert failed.error_codes == (codes.LEDGER_UNAVAILABLE,)
    assert pending.status == SampleStatus.PENDING
    assert pending.proof_ref == ledger.entries[0].proof_ref
    assert len(ledger.entries) == 1
    assert retried.status == SampleStatus.VERIFIED
    assert retried.proof_ref == pending.proof_ref


def test_exhausted_budget_fails_without_touching_ledger() -> None:
    clock = _Clock(_T0)
    service, ledger, _ = _build(clock=clock)
    sample_id = service.submit(meta=_meta(), sample=_temperature(5.0)).value.sample_id
    clock.now = _T0 + timedelta(seconds=121)

    outcome = asyncio.run(service.verify(meta=_meta(), sample_id=sample_id)).value

    assert outcome.status == SampleStatus.FAILED
    assert ledger.entries == ()


def test_expire_pending_sweeps_overdue_samples() -> None:
    clock = _Clock(_T0)
    service, _, _ = _build(clock=clock)
    old_id = service.submit(meta=_meta(), sample=_temperature(5.0, observed_at=_NOW - 500)).value.sample_id
    clock.now = _T0 + timedelta(seconds=100)
    fresh_id = service.submit(meta=_meta(), sample=_temperature(5.0, observed_at=_NOW)).value.sample_id
    clock.now = _T0 + timedelta(seconds=150)

    expired = service.expire_pending(meta=_meta())

    assert expired.value == 1
    assert service.get_sample(meta=_meta(), sample_id=old_id).value.status == SampleStatus.FAILED
    assert service.get_sample(meta=_meta(), sample_id=fresh_id).value.status == SampleStatus.PENDING


def test_verified_window_merges_sources_in_observation_order() -> None:
    service, _, _ = _build()
    _submit_and_verify(service, _temperature(5.0, observed_at=_NOW - 30))
    _submit_and_verify(
        service,
        LocationSample(shipment_id="S-1", latitude=52.0, longitude=4.0, observed_at=_NOW - 90),
    )
    _submit_and_verify(service, _temperature(6.0, observed_at=_NOW - 60, device_id="dev-2"))
    service.submit(meta=_meta(), sample=_temperature(7.0, observed_at=_NOW - 10))

    window = service.verified_window(
        meta=_meta(), device_ids=["dev-1", "dev-2"], shipment_id="S-1"
    ).value

    assert [sample.observed_at for sample in window] == [_NOW - 90, _NOW - 60, _NOW - 30]
    assert all(sample.verified for sample in window)
    bounded = service.verified_window(meta=_meta(), device_ids=["dev-1", "dev-2"], since=_NOW - 60).value
    assert [sample.observed_at for sample in bounded] == [_NOW - 60, _NOW - 30]


def test_window_retention_evicts_oldest_per_source() -> None:
    service, _, _ = _build(window_size=3)
    ids = [
        service.submit(meta=_meta(), sample=_temperature(5.0, observed_at=_NOW - 100 + step)).value.sample_id
        for step in range(5)
    ]

    assert service.get_sample(meta=_meta(), sample_id=ids[0]).error_codes == (codes.UNKNOWN_SAMPLE,)
    assert service.get_sample(meta=_meta(), sample_id=ids[1]).error_codes == (codes.UNKNOWN_SAMPLE,)
    assert service.get_sample(meta=_meta(), sample_id=ids[4]).ok


def test_verify_unknown_sample() -> None:
    service, _, _ = _build()
    result = asyncio.run(service.verify(meta=_meta(), sample_id="missing"))
    assert result.error_codes == (codes.UNKNOWN_SAMPLE,)


@pytest.mark.parametrize("window_size", [2, 500])
def test_sql_repository_enforces_window_and_duplicates(window_size: int) -> None:
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    service, _, _ = _build(
        repository=SqlSampleRepository(substrate), window_size=window_size
    )
    ids = [
        service.submit(meta=_meta(), sample=_temperature(4.0, observed_at=_NOW - 50 + step)).value.sample_id
        for step in range(3)
    ]
    duplicate = service.submit(meta=_meta(), sample=_temperature(4.0, observed_at=_NOW - 48))
    asyncio.run(service.verify(meta=_meta(), sample_id=ids[2]))

    window = service.verified_window(meta=_meta(), device_ids=["dev-1"]).value
    retained = service.get_sample(meta=_meta(), sample_id=ids[0])

    assert duplicate.error_codes == (codes.SAMPLE_REJECTED,)
    assert [sample.sample_id for sample in window] == [ids[2]]
    assert window[0].sample.unit == "°C"
    assert retained.ok is (window_size == 500)
    substrate.dispose()
