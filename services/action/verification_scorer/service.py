"""Authoritative in-process Python API for the Verification Scorer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.envelope import Envelope, EnvelopeMeta
from services.action.escrow_engine.service import EscrowEngineService
from services.action.verification_scorer.domain import ScoreReport
from services.state.provenance_store.service import ProvenanceStoreService


class VerificationScorerService(ABC):
    """Public API for customer-facing unit trust scores."""

    @abstractmethod
    def score(
        self, *, meta: EnvelopeMeta, unit_id: str, now: datetime | None = None
    ) -> Envelope[ScoreReport]:
        """Score one unit; ``now`` defaults to the service clock."""


def build_verification_scorer_service(
    *,
    settings: ProTrackSettings,
    provenance: ProvenanceStoreService,
    escrow: EscrowEngineService,
) -> VerificationScorerService:
    """Build the default Verification Scorer."""
    from services.action.verification_scorer.config import (
        resolve_verification_scorer_settings,
    )
    from services.action.verification_scorer.implementation import (
        DefaultVerificationScorerService,
    )

    return DefaultVerificationScorerService(
        settings=resolve_verification_scorer_settings(settings),
        provenance=provenance,
        escrow=escrow,
    )
