"""Verification Scorer native package exports."""

from services.action.verification_scorer.component import MANIFEST
from services.action.verification_scorer.config import (
    ScoreDeductions,
    VerificationScorerSettings,
)
from services.action.verification_scorer.domain import ScoreReport, TrustLevel
from services.action.verification_scorer.implementation import (
    DefaultVerificationScorerService,
)
from services.action.verification_scorer.scoring import score_record
from services.action.verification_scorer.service import (
    VerificationScorerService,
    build_verification_scorer_service,
)

__all__ = [
    "MANIFEST",
    "DefaultVerificationScorerService",
    "ScoreDeductions",
    "ScoreReport",
    "TrustLevel",
    "VerificationScorerService",
    "VerificationScorerSettings",
    "build_verification_scorer_service",
    "score_record",
]
