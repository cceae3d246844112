"""Concrete Verification Scorer implementation."""

from __future__ import annotations

from datetime import datetime

from packages.protrack_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    child_meta,
    failure,
    success,
)
from packages.protrack_shared.errors import exception_to_error
from packages.protrack_shared.logging import get_logger, public_api_instrumented
from packages.protrack_shared.time_utils import Clock, utc_now
from packages.protrack_shared.validation import validate_request
from services.action.escrow_engine.service import EscrowEngineService
from services.action.verification_scorer.component import SERVICE_COMPONENT_ID
from services.action.verification_scorer.config import VerificationScorerSettings
from services.action.verification_scorer.domain import ScoreReport
from services.action.verification_scorer.scoring import score_record
from services.action.verification_scorer.service import VerificationScorerService
from services.action.verification_scorer.validation import ScoreRequest
from services.state.provenance_store.service import ProvenanceStoreService

_LOGGER = get_logger(__name__)


class DefaultVerificationScorerService(VerificationScorerService):
    """Read-only scorer over provenance records and settled escrow verdicts."""

    def __init__(
        self,
        *,
        settings: VerificationScorerSettings,
        provenance: ProvenanceStoreService,
        escrow: EscrowEngineService,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._provenance = provenance
        self._escrow = escrow
        self._clock = clock

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("unit_id",),
    )
    def score(
        self, *, meta: EnvelopeMeta, unit_id: str, now: datetime | None = None
    ) -> Envelope[ScoreReport]:
        request, errors = validate_request(
            meta=meta, model=ScoreRequest, payload={"unit_id": unit_id, "now": now}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        record = self._provenance.get_record(
            meta=child_meta(meta, source=str(SERVICE_COMPONENT_ID)), unit_id=request.unit_id
        )
        if not record.ok:
            return failure(meta=meta, errors=record.errors)
        assert record.value is not None

        try:
            verdicts = self._escrow.verdict_history(request.unit_id)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "Verdict history unavailable: unit_id=%s exception_type=%s",
                request.unit_id,
                type(exc).__name__,
                exc_info=exc,
            )
            return failure(
                meta=meta,
                errors=[exception_to_error(exc, metadata={"resource": "escrow_engine"})],
            )

        return success(
            meta=meta,
            payload=score_record(
                record.value,
                verdicts,
                now=request.now or self._clock(),
                settings=self._settings,
            ),
        )
