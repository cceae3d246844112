"""Escrow Engine native package exports."""

from services.action.escrow_engine.component import MANIFEST
from services.action.escrow_engine.config import (
    EscrowEngineSettings,
    SettlementSchedulerSettings,
)
from services.action.escrow_engine.domain import (
    EscrowAgreement,
    EscrowState,
    HealthStatus,
    Settlement,
    SettlementOutcome,
)
from services.action.escrow_engine.implementation import DefaultEscrowEngineService
from services.action.escrow_engine.scheduler import SchedulerTick, SettlementScheduler
from services.action.escrow_engine.service import (
    EscrowEngineService,
    build_escrow_engine_service,
)

__all__ = [
    "MANIFEST",
    "DefaultEscrowEngineService",
    "EscrowAgreement",
    "EscrowEngineService",
    "EscrowEngineSettings",
    "EscrowState",
    "HealthStatus",
    "SchedulerTick",
    "SettlementScheduler",
    "Settlement",
    "SettlementOutcome",
    "SettlementSchedulerSettings",
    "build_escrow_engine_service",
]
