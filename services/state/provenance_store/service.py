"""Authoritative in-process Python API for the Provenance Store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.envelope import Envelope, EnvelopeMeta
from resources.adapters.ledger import LedgerAdapter
from resources.adapters.signing import ActorCapability, SigningProvider
from resources.substrates.sql import SqlSubstrate
from services.state.provenance_store.domain import (
    AppendReceipt,
    EventDraft,
    HealthStatus,
    MintReceipt,
    ProvenanceEvent,
    ProvenanceRecord,
    UnitDescriptor,
    UnitSnapshot,
)
from services.state.transaction_ledger import TransactionLedgerService


class ProvenanceStoreService(ABC):
    """Public API for append-only unit provenance."""

    @abstractmethod
    async def mint(
        self,
        *,
        meta: EnvelopeMeta,
        descriptor: UnitDescriptor,
        idempotency_key: str,
    ) -> Envelope[MintReceipt]:
        """Anchor and persist one new unit."""

    @abstractmethod
    async def append_event(
        self,
        *,
        meta: EnvelopeMeta,
        unit_id: str,
        event: EventDraft,
        capability: ActorCapability,
    ) -> Envelope[AppendReceipt]:
        """Anchor and append one event on behalf of the current custodian."""

    @abstractmethod
    def history(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> Envelope[tuple[ProvenanceEvent, ...]]:
        """Return the full ordered history of one unit."""

    @abstractmethod
    def iter_history(self, unit_id: str) -> Iterator[ProvenanceEvent]:
        """Lazily page through one unit's history; each call starts over."""

    @abstractmethod
    def current_snapshot(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> Envelope[UnitSnapshot]:
        """Fold history into current location/value."""

    @abstractmethod
    def get_record(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> Envelope[ProvenanceRecord]:
        """Return one unit with derived state and history."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return store and ledger readiness."""


def build_provenance_store_service(
    *,
    settings: ProTrackSettings,
    ledger: LedgerAdapter,
    signing: SigningProvider,
    substrate: SqlSubstrate | None = None,
    activity: TransactionLedgerService | None = None,
) -> ProvenanceStoreService:
    """Build the default Provenance Store over the configured repository."""
    from services.state.provenance_store.config import resolve_provenance_store_settings
    from services.state.provenance_store.data import (
        InMemoryProvenanceRepository,
        SqlProvenanceRepository,
    )
    from services.state.provenance_store.implementation import (
        DefaultProvenanceStoreService,
    )

    service_settings = resolve_provenance_store_settings(settings)
    if service_settings.backend == "sql":
        if substrate is None:
            raise ValueError("sql backend requires substrate_sql")
        repository = SqlProvenanceRepository(substrate)
    else:
        repository = InMemoryProvenanceRepository()
    return DefaultProvenanceStoreService(
        settings=service_settings,
        repository=repository,
        ledger=ledger,
        signing=signing,
        activity=activity,
    )
