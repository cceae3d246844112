"""Authoritative in-process Python API for OracleIngest."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.envelope import Envelope, EnvelopeMeta
from resources.adapters.ledger import LedgerAdapter
from resources.substrates.sql import SqlSubstrate
from services.state.oracle_ingest.domain import (
    HealthStatus,
    LocationSample,
    SensorSample,
    StoredSample,
    SubmitReceipt,
    VerificationOutcome,
)
from services.state.transaction_ledger import TransactionLedgerService


class OracleIngestService(ABC):
    """Public API for admitting and verifying oracle samples."""

    @abstractmethod
    def submit(
        self, *, meta: EnvelopeMeta, sample: SensorSample | LocationSample
    ) -> Envelope[SubmitReceipt]:
        """Admit one sample as ``PENDING`` or reject it with ``SAMPLE_REJECTED``."""

    @abstractmethod
    async def verify(
        self, *, meta: EnvelopeMeta, sample_id: str
    ) -> Envelope[VerificationOutcome]:
        """Anchor one pending sample and await its confirmation."""

    @abstractmethod
    def expire_pending(self, *, meta: EnvelopeMeta) -> Envelope[int]:
        """Fail every pending sample whose verification budget has run out."""

    @abstractmethod
    def verified_window(
        self,
        *,
        meta: EnvelopeMeta,
        device_ids: Sequence[str] = (),
        shipment_id: str | None = None,
        since: int | None = None,
        until: int | None = None,
    ) -> Envelope[tuple[StoredSample, ...]]:
        """Return verified samples for the given sources, oldest first."""

    @abstractmethod
    def get_sample(self, *, meta: EnvelopeMeta, sample_id: str) -> Envelope[StoredSample]:
        """Read one stored sample."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return ingest and ledger readiness."""


def build_oracle_ingest_service(
    *,
    settings: ProTrackSettings,
    ledger: LedgerAdapter,
    substrate: SqlSubstrate | None = None,
    activity: TransactionLedgerService | None = None,
) -> OracleIngestService:
    """Build the default OracleIngest over the configured repository."""
    from services.state.oracle_ingest.config import resolve_oracle_ingest_settings
    from services.state.oracle_ingest.data import (
        InMemorySampleRepository,
        SqlSampleRepository,
    )
    from services.state.oracle_ingest.implementation import DefaultOracleIngestService

    service_settings = resolve_oracle_ingest_settings(settings)
    if service_settings.backend == "sql":
        if substrate is None:
            raise ValueError("sql backend requires substrate_sql")
        repository = SqlSampleRepository(substrate)
    else:
        repository = InMemorySampleRepository()
    return DefaultOracleIngestService(
        settings=service_settings,
        repository=repository,
        ledger=ledger,
        activity=activity,
    )
