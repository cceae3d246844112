"""Behavior tests for the Verification Scorer service."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from packages.protrack_shared.envelope import EnvelopeKind, new_meta
from packages.protrack_shared.errors import codes
from resources.adapters.ledger import InMemoryLedgerAdapter
from resources.adapters.signing import HmacSigningProvider
from services.action.sla_evaluator import SLAVerdict
from services.action.verification_scorer import (
    DefaultVerificationScorerService,
    VerificationScorerSettings,
)
from services.state.provenance_store import (
    DefaultProvenanceStoreService,
    ProvenanceStoreSettings,
    UnitDescriptor,
)
from services.state.provenance_store.data import InMemoryProvenanceRepository

_T0 = datetime(2025, 2, 1, tzinfo=UTC)


def _meta():
    return new_meta(kind=EnvelopeKind.QUERY, source="test", principal="customer")


class _Verdicts:
    """Escrow stand-in exposing only the verdict history."""

    def __init__(self, verdicts=(), *, error: Exception | None = None) -> None:
        self._verdicts = tuple(verdicts)
        self._error = error

    def verdict_history(self, unit_id: str):
        if self._error is not None:
            raise self._error
        return self._verdicts


def _build(escrow):
    provenance = DefaultProvenanceStoreService(
        settings=ProvenanceStoreSettings(backend="memory"),
        repository=InMemoryProvenanceRepository(),
        ledger=InMemoryLedgerAdapter(),
        signing=HmacSigningProvider(secret="test-secret"),
        clock=lambda: _T0,
    )
    scorer = DefaultVerificationScorerService(
        settings=VerificationScorerSettings(),
        provenance=provenance,
        escrow=escrow,
        clock=lambda: _T0 + timedelta(days=45),
    )
    minted = asyncio.run(
        provenance.mint(
            meta=_meta(),
            descriptor=UnitDescriptor(name="Tea", manufacturer="estate"),
            idempotency_key="tea-1",
        )
    )
    return scorer, minted.value.unit_id


def test_score_uses_service_clock_and_verdicts() -> None:
    breach = SLAVerdict(compliant=False, violations=("hot",))
    scorer, unit_id = _build(_Verdicts([breach]))

    report = scorer.score(meta=_meta(), unit_id=unit_id).value

    assert report.unit_id == unit_id
    assert report.score == 60
    assert report.risk_factors == (
        "Missing SKU",
        "Limited supply chain visibility",
        "Product age exceeds recommended timeframe",
        "SLA violations detected in supply chain",
    )


def test_explicit_now_overrides_clock() -> None:
    scorer, unit_id = _build(_Verdicts())

    report = scorer.score(meta=_meta(), unit_id=unit_id, now=_T0 + timedelta(days=2)).value

    assert report.score == 70
    assert "Product age exceeds recommended timeframe" not in report.risk_factors


def test_unknown_unit() -> None:
    scorer, _ = _build(_Verdicts())

    result = scorer.score(meta=_meta(), unit_id="01JUNKNOWNUNIT000000000000")

    assert result.error_codes == (codes.UNKNOWN_UNIT,)


def test_verdict_history_failure_is_dependency_error() -> None:
    scorer, unit_id = _build(_Verdicts(error=ConnectionError("db down")))

    result = scorer.score(meta=_meta(), unit_id=unit_id)

    assert result.error_codes == (codes.DEPENDENCY_UNAVAILABLE,)
    assert result.errors[0].retryable is True
    assert result.errors[0].metadata["resource"] == "escrow_engine"


def test_unexpected_verdict_history_failure_is_internal_error() -> None:
    scorer, unit_id = _build(_Verdicts(error=RuntimeError("corrupt row")))

    result = scorer.score(meta=_meta(), unit_id=unit_id)

    assert result.error_codes == (codes.UNEXPECTED_EXCEPTION,)
    assert result.errors[0].retryable is False
    assert result.errors[0].metadata == {
        "resource": "escrow_engine",
        "exception_type": "RuntimeError",
    }
