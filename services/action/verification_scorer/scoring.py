"""Pure scoring of a provenance record."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from services.action.sla_evaluator.domain import SLAVerdict
from services.action.verification_scorer.config import VerificationScorerSettings
from services.action.verification_scorer.domain import (
    LIMITED_VISIBILITY,
    MISSING_MANUFACTURER,
    MISSING_NAME,
    MISSING_SKU,
    SLA_VIOLATIONS,
    STALE_UNIT,
    ScoreReport,
    TrustLevel,
)
from services.state.provenance_store.domain import ProvenanceRecord

MAX_SCORE = 100


def score_record(
    record: ProvenanceRecord,
    verdicts: Iterable[SLAVerdict],
    *,
    now: datetime,
    settings: VerificationScorerSettings,
) -> ScoreReport:
    """Score ``record`` from completeness, history depth, age and SLA outcomes.

    Every deduction contributes one risk factor; the result is clamped to
    ``[0, 100]``.
    """
    deductions = settings.deductions
    findings: list[tuple[str, int]] = []
    if not record.name:
        findings.append((MISSING_NAME, deductions.missing_name))
    if not record.sku:
        findings.append((MISSING_SKU, deductions.missing_sku))
    if not record.manufacturer:
        findings.append((MISSING_MANUFACTURER, deductions.missing_manufacturer))
    if len(record.history) < settings.min_history_events:
        findings.append((LIMITED_VISIBILITY, deductions.limited_history))
    if now - record.created_at > timedelta(days=settings.freshness_days):
        findings.append((STALE_UNIT, deductions.stale_unit))
    if any(not verdict.compliant for verdict in verdicts):
        findings.append((SLA_VIOLATIONS, deductions.sla_violation))

    score = max(0, min(MAX_SCORE, MAX_SCORE - sum(points for _, points in findings)))
    return ScoreReport(
        unit_id=record.unit_id,
        score=score,
        level=TrustLevel.for_score(score),
        risk_factors=tuple(reason for reason, _ in findings),
    )
