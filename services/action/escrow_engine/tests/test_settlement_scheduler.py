"""Tests for the periodic settlement sweep."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from packages.protrack_shared.envelope import EnvelopeKind, new_meta
from resources.adapters.fund_rail import InMemoryFundTransferRail
from resources.adapters.ledger import InMemoryLedgerAdapter
from resources.adapters.signing import HmacSigningProvider
from services.action.escrow_engine import (
    DefaultEscrowEngineService,
    EscrowEngineSettings,
    EscrowState,
    SettlementScheduler,
    SettlementSchedulerSettings,
)
from services.action.escrow_engine.data import InMemoryEscrowRepository
from services.action.sla_evaluator import DefaultSlaEvaluatorService, SlaConditions
from services.state.oracle_ingest import (
    DefaultOracleIngestService,
    OracleIngestSettings,
    SampleStatus,
    SensorSample,
    SensorType,
)
from services.state.oracle_ingest.data import InMemorySampleRepository
from services.state.provenance_store import (
    DefaultProvenanceStoreService,
    ProvenanceStoreSettings,
    UnitDescriptor,
)
from services.state.provenance_store.data import InMemoryProvenanceRepository

_T0 = datetime(2025, 6, 1, 0, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _meta():
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="buyer")


def _build(*, lookahead_seconds: float = 0.0, interval_seconds: float = 30.0):
    clock = _Clock(_T0)
    ledger = InMemoryLedgerAdapter()
    signing = HmacSigningProvider(secret="test-secret")
    provenance = DefaultProvenanceStoreService(
        settings=ProvenanceStoreSettings(backend="memory"),
        repository=InMemoryProvenanceRepository(),
        ledger=ledger,
        signing=signing,
        clock=clock,
    )
    oracle = DefaultOracleIngestService(
        settings=OracleIngestSettings(backend="memory"),
        repository=InMemorySampleRepository(),
        ledger=ledger,
        clock=clock,
    )
    engine = DefaultEscrowEngineService(
        settings=EscrowEngineSettings(backend="memory"),
        repository=InMemoryEscrowRepository(),
        rail=InMemoryFundTransferRail(),
        signing=signing,
        provenance=provenance,
        oracle=oracle,
        evaluator=DefaultSlaEvaluatorService(),
        clock=clock,
    )
    scheduler = SettlementScheduler(
        engine=engine,
        oracle=oracle,
        settings=SettlementSchedulerSettings(
            interval_seconds=interval_seconds, lookahead_seconds=lookahead_seconds
        ),
        clock=clock,
    )
    minted = asyncio.run(
        provenance.mint(
            meta=_meta(),
            descriptor=UnitDescriptor(name="Seeds", sku="S-1", manufacturer="farm"),
            idempotency_key="seeds",
        )
    )
    return scheduler, engine, oracle, signing, clock, minted.value.unit_id


def _create(engine, signing, unit_id: str, deadline: datetime) -> str:
    created = asyncio.run(
        engine.create(
            meta=_meta(),
            unit_id=unit_id,
            payer=signing.issue(actor="buyer"),
            payee="farm",
            amount=Decimal("10"),
            conditions=SlaConditions(max_temperature=25),
            expected_delivery_by=deadline,
        )
    )
    return created.value.escrow_id


def _state(engine, escrow_id: str) -> EscrowState:
    return engine.status(meta=_meta(), escrow_id=escrow_id).value.state


def test_tick_settles_due_escrows_only() -> None:
    scheduler, engine, _, signing, clock, unit_id = _build(lookahead_seconds=600)
    due_id = _create(engine, signing, unit_id, _T0 + timedelta(hours=1))
    later_id = _create(engine, signing, unit_id, _T0 + timedelta(days=1))
    clock.now = _T0 + timedelta(minutes=55)

    tick = asyncio.run(scheduler.run_once())

    assert tick.settled == (due_id,)
    assert tick.failed == ()
    assert _state(engine, due_id) == EscrowState.RELEASED
    assert _state(engine, later_id) == EscrowState.OPEN


def test_tick_expires_overdue_samples() -> None:
    scheduler, _, oracle, _, clock, _ = _build()
    sample = SensorSample(
        device_id="probe",
        sensor_type=SensorType.TEMPERATURE,
        value=20.0,
        observed_at=int(_T0.timestamp()),
    )
    sample_id = oracle.submit(meta=_meta(), sample=sample).value.sample_id
    clock.now = _T0 + timedelta(minutes=5)

    tick = asyncio.run(scheduler.run_once())

    assert tick.expired_samples == 1
    assert oracle.get_sample(meta=_meta(), sample_id=sample_id).value.status == SampleStatus.FAILED


def test_one_failing_escrow_does_not_stop_the_tick(monkeypatch) -> None:
    scheduler, engine, _, signing, clock, unit_id = _build()
    broken_id = _create(engine, signing, unit_id, _T0 + timedelta(hours=1))
    healthy_id = _create(engine, signing, unit_id, _T0 + timedelta(hours=2))
    clock.now = _T0 + timedelta(hours=3)
    original = engine.evaluate_and_settle

    async def _flaky(*, meta, escrow_id):
        if escrow_id == broken_id:
            raise RuntimeError("boom")
        return await original(meta=meta, escrow_id=escrow_id)

    monkeypatch.setattr(engine, "evaluate_and_settle", _flaky)
    tick = asyncio.run(scheduler.run_once())

    assert tick.failed == (broken_id,)
    assert tick.settled == (healthy_id,)
    assert _state(engine, broken_id) == EscrowState.OPEN
    assert _state(engine, healthy_id) == EscrowState.EXPIRED


def test_run_forever_sweeps_until_stopped() -> None:
    scheduler, engine, _, signing, clock, unit_id = _build(interval_seconds=0.01)
    escrow_id = _create(engine, signing, unit_id, _T0 + timedelta(hours=1))
    clock.now = _T0 + timedelta(hours=2)

    async def _run() -> None:
        stop = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, stop.set)
        await asyncio.wait_for(scheduler.run_forever(stop), timeout=2)

    asyncio.run(_run())

    assert _state(engine, escrow_id) == EscrowState.EXPIRED
