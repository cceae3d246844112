"""Concrete SLA Evaluator implementation."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from packages.protrack_shared.envelope import Envelope, EnvelopeMeta, failure, success
from packages.protrack_shared.logging import get_logger, public_api_instrumented
from packages.protrack_shared.validation import validate_request
from services.action.sla_evaluator.component import SERVICE_COMPONENT_ID
from services.action.sla_evaluator.domain import SlaConditions, SLAVerdict
from services.action.sla_evaluator.evaluator import evaluate
from services.action.sla_evaluator.penalties import DEFAULT_PENALTY_POLICY, PenaltyPolicy
from services.action.sla_evaluator.service import SlaEvaluatorService
from services.action.sla_evaluator.validation import EvaluateRequest
from services.state.oracle_ingest.domain import StoredSample

_LOGGER = get_logger(__name__)


class DefaultSlaEvaluatorService(SlaEvaluatorService):
    """Stateless evaluator bound to one penalty policy."""

    def __init__(self, *, penalty_policy: PenaltyPolicy = DEFAULT_PENALTY_POLICY) -> None:
        self._penalty_policy = penalty_policy

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def evaluate(
        self,
        *,
        meta: EnvelopeMeta,
        conditions: SlaConditions,
        samples: Iterable[StoredSample],
        now: datetime,
        started_at: datetime,
    ) -> Envelope[SLAVerdict]:
        request, errors = validate_request(
            meta=meta,
            model=EvaluateRequest,
            payload={
                "conditions": conditions,
                "samples": tuple(samples),
                "now": now,
                "started_at": started_at,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        verdict = evaluate(
            request.conditions,
            request.samples,
            now=request.now,
            started_at=request.started_at,
            penalty_policy=self._penalty_policy,
        )
        if not verdict.compliant:
            _LOGGER.info(
                "SLA breached: violations=%d penalty=%s",
                len(verdict.violations),
                verdict.penalty_amount,
            )
        return success(meta=meta, payload=verdict)
