"""Authoritative in-process Python API for the Escrow Engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.envelope import Envelope, EnvelopeMeta
from resources.adapters.fund_rail import FundTransferRail
from resources.adapters.signing import ActorCapability, SigningProvider
from resources.substrates.sql import SqlSubstrate
from services.action.escrow_engine.domain import (
    EscrowAgreement,
    HealthStatus,
    SettlementOutcome,
)
from services.action.sla_evaluator.domain import SlaConditions, SLAVerdict
from services.action.sla_evaluator.service import SlaEvaluatorService
from services.state.oracle_ingest.service import OracleIngestService
from services.state.provenance_store.service import ProvenanceStoreService
from services.state.transaction_ledger import TransactionLedgerService


class EscrowEngineService(ABC):
    """Public API for conditional payment escrows."""

    @abstractmethod
    async def create(
        self,
        *,
        meta: EnvelopeMeta,
        unit_id: str,
        payer: ActorCapability,
        payee: str,
        amount: Decimal,
        conditions: SlaConditions,
        expected_delivery_by: datetime,
        shipment_id: str | None = None,
        device_ids: Sequence[str] = (),
    ) -> Envelope[EscrowAgreement]:
        """Lock ``amount`` from the payer against a unit's delivery conditions."""

    @abstractmethod
    async def evaluate_and_settle(
        self, *, meta: EnvelopeMeta, escrow_id: str
    ) -> Envelope[SettlementOutcome]:
        """Evaluate an open escrow and move its funds exactly once."""

    @abstractmethod
    def status(self, *, meta: EnvelopeMeta, escrow_id: str) -> Envelope[EscrowAgreement]:
        """Read one escrow with its settlement, if any."""

    @abstractmethod
    def list_due(
        self, *, meta: EnvelopeMeta, horizon: datetime
    ) -> Envelope[tuple[EscrowAgreement, ...]]:
        """Return open escrows whose delivery deadline is at or before ``horizon``."""

    @abstractmethod
    def verdict_history(self, unit_id: str) -> tuple[SLAVerdict, ...]:
        """Return the cached verdicts of every settled escrow on ``unit_id``."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return engine and fund rail readiness."""


def build_escrow_engine_service(
    *,
    settings: ProTrackSettings,
    rail: FundTransferRail,
    signing: SigningProvider,
    provenance: ProvenanceStoreService,
    oracle: OracleIngestService,
    evaluator: SlaEvaluatorService,
    substrate: SqlSubstrate | None = None,
    activity: TransactionLedgerService | None = None,
) -> EscrowEngineService:
    """Build the default Escrow Engine over the configured repository."""
    from services.action.escrow_engine.config import resolve_escrow_engine_settings
    from services.action.escrow_engine.data import (
        InMemoryEscrowRepository,
        SqlEscrowRepository,
    )
    from services.action.escrow_engine.implementation import DefaultEscrowEngineService

    service_settings = resolve_escrow_engine_settings(settings)
    if service_settings.backend == "sql":
        if substrate is None:
            raise ValueError("sql backend requires substrate_sql")
        repository = SqlEscrowRepository(substrate)
    else:
        repository = InMemoryEscrowRepository()
    return DefaultEscrowEngineService(
        settings=service_settings,
        repository=repository,
        rail=rail,
        signing=signing,
        provenance=provenance,
        oracle=oracle,
        evaluator=evaluator,
        activity=activity,
    )
