"""Behavior tests for the enveloped SLA Evaluator service."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from packages.protrack_shared.config import load_settings
from packages.protrack_shared.envelope import EnvelopeKind, new_meta
from packages.protrack_shared.errors import codes
from services.action.sla_evaluator import SlaConditions, build_sla_evaluator_service
from services.state.oracle_ingest import SampleStatus, SensorSample, SensorType, StoredSample

_NOW = datetime(2025, 3, 2, 12, 0, tzinfo=UTC)


def _meta():
    return new_meta(kind=EnvelopeKind.QUERY, source="test", principal="operator")


def _hot_sample() -> StoredSample:
    return StoredSample(
        sample_id="S1",
        sample=SensorSample(
            device_id="dev-1",
            sensor_type=SensorType.TEMPERATURE,
            value=12,
            unit="°C",
            observed_at=1_700_000_000,
        ),
        status=SampleStatus.VERIFIED,
        submitted_at=_NOW,
        proof_ref="b" * 64,
    )


def test_configured_penalty_unit_is_applied() -> None:
    settings = load_settings(
        components={"service": {"sla_evaluator": {"penalty_unit": "2.5"}}}
    )
    service = build_sla_evaluator_service(settings=settings)

    result = service.evaluate(
        meta=_meta(),
        conditions=SlaConditions(max_temperature=8),
        samples=[_hot_sample()],
        now=_NOW,
        started_at=_NOW,
    )

    assert result.ok
    assert result.value.penalty_amount == Decimal("2.5")


def test_invalid_conditions_are_rejected() -> None:
    service = build_sla_evaluator_service(settings=load_settings())

    result = service.evaluate(
        meta=_meta(),
        conditions={"max_temperature": 8, "max_humidity": 50},
        samples=[],
        now=_NOW,
        started_at=_NOW,
    )

    assert result.ok is False
    assert result.error_codes == (codes.INVALID_ARGUMENT,)
