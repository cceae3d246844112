"""Authoritative in-process Python API for the SLA Evaluator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.envelope import Envelope, EnvelopeMeta
from services.action.sla_evaluator.domain import SlaConditions, SLAVerdict
from services.state.oracle_ingest.domain import StoredSample


class SlaEvaluatorService(ABC):
    """Public API for reconciling sample windows against SLA conditions."""

    @abstractmethod
    def evaluate(
        self,
        *,
        meta: EnvelopeMeta,
        conditions: SlaConditions,
        samples: Iterable[StoredSample],
        now: datetime,
        started_at: datetime,
    ) -> Envelope[SLAVerdict]:
        """Return a fresh verdict for ``samples`` under ``conditions``."""


def build_sla_evaluator_service(*, settings: ProTrackSettings) -> SlaEvaluatorService:
    """Build the default SLA Evaluator with the configured penalty policy."""
    from services.action.sla_evaluator.config import resolve_sla_evaluator_settings
    from services.action.sla_evaluator.implementation import DefaultSlaEvaluatorService
    from services.action.sla_evaluator.penalties import per_violation_penalty

    service_settings = resolve_sla_evaluator_settings(settings)
    return DefaultSlaEvaluatorService(
        penalty_policy=per_violation_penalty(unit=service_settings.penalty_unit)
    )
