"""SLA Evaluator native package exports."""

from services.action.sla_evaluator.component import MANIFEST
from services.action.sla_evaluator.config import SlaEvaluatorSettings
from services.action.sla_evaluator.domain import RequiredLocation, SlaConditions, SLAVerdict
from services.action.sla_evaluator.evaluator import evaluate
from services.action.sla_evaluator.geodesy import EARTH_RADIUS_KM, haversine_km
from services.action.sla_evaluator.implementation import DefaultSlaEvaluatorService
from services.action.sla_evaluator.penalties import (
    DEFAULT_PENALTY_POLICY,
    PenaltyPolicy,
    capped_penalty,
    per_violation_penalty,
)
from services.action.sla_evaluator.service import (
    SlaEvaluatorService,
    build_sla_evaluator_service,
)

__all__ = [
    "DEFAULT_PENALTY_POLICY",
    "EARTH_RADIUS_KM",
    "MANIFEST",
    "DefaultSlaEvaluatorService",
    "PenaltyPolicy",
    "RequiredLocation",
    "SLAVerdict",
    "SlaConditions",
    "SlaEvaluatorService",
    "SlaEvaluatorSettings",
    "build_sla_evaluator_service",
    "capped_penalty",
    "evaluate",
    "haversine_km",
    "per_violation_penalty",
]
