"""Composition root and command/query surface for ProTrack.

``ProTrackRuntime.build`` discovers every registered component, validates
the registry, instantiates resources and services in dependency order and
returns a facade whose methods map one-to-one onto service operations.
Every method returns the service envelope unchanged; callers that prefer
exceptions use ``packages.protrack_core.errors.unwrap``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from packages.protrack_core.components import (
    instantiate_registered_components,
    load_component_manifests,
)
from packages.protrack_core.health import CoreHealthResult, evaluate_core_health
from packages.protrack_shared.config import ProTrackSettings, load_settings
from packages.protrack_shared.envelope import (
    Envelope,
    EnvelopeKind,
    EnvelopeMeta,
    new_meta,
)
from packages.protrack_shared.logging import get_logger
from packages.protrack_shared.manifest import get_registry
from packages.protrack_shared.time_utils import Clock, utc_now
from resources.adapters.signing import ActorCapability, SigningProvider
from services.action.escrow_engine import (
    EscrowAgreement,
    EscrowEngineService,
    SettlementOutcome,
    SettlementScheduler,
)
from services.action.escrow_engine.config import resolve_escrow_engine_settings
from services.action.sla_evaluator import SlaConditions
from services.action.verification_scorer import (
    ScoreReport,
    VerificationScorerService,
)
from services.state.oracle_ingest import (
    LocationSample,
    OracleIngestService,
    SensorSample,
    StoredSample,
    SubmitReceipt,
    VerificationOutcome,
)
from services.state.provenance_store import (
    AppendReceipt,
    EventDraft,
    MintReceipt,
    ProvenanceEvent,
    ProvenanceRecord,
    ProvenanceStoreService,
    UnitDescriptor,
    UnitSnapshot,
)
from services.state.transaction_ledger import (
    ActivityEntry,
    TransactionLedgerService,
)

_LOGGER = get_logger(__name__)
_SOURCE = "protrack_runtime"


class ProTrackRuntime:
    """Process-local facade over the instantiated component graph."""

    def __init__(
        self, *, settings: ProTrackSettings, components: Mapping[str, object]
    ) -> None:
        self._settings = settings
        self._components = dict(components)

    @classmethod
    def build(
        cls,
        settings: ProTrackSettings | None = None,
        *,
        overrides: Mapping[str, object] | None = None,
    ) -> "ProTrackRuntime":
        """Instantiate every registered component from ``settings``."""
        resolved = settings if settings is not None else load_settings()
        load_component_manifests()
        get_registry().assert_valid()
        components = instantiate_registered_components(resolved, overrides=overrides)
        _LOGGER.info("runtime ready: components=%d", len(components))
        return cls(settings=resolved, components=components)

    @property
    def settings(self) -> ProTrackSettings:
        return self._settings

    @property
    def components(self) -> Mapping[str, object]:
        return dict(self._components)

    @property
    def provenance(self) -> ProvenanceStoreService:
        return self._component("service_provenance_store")

    @property
    def oracle(self) -> OracleIngestService:
        return self._component("service_oracle_ingest")

    @property
    def escrow(self) -> EscrowEngineService:
        return self._component("service_escrow_engine")

    @property
    def scorer(self) -> VerificationScorerService:
        return self._component("service_verification_scorer")

    @property
    def activity_feed(self) -> TransactionLedgerService:
        return self._component("service_transaction_ledger")

    @property
    def signing(self) -> SigningProvider:
        return self._component("adapter_signing")

    def issue_capability(self, actor: str) -> ActorCapability:
        """Return a capability that authenticates as ``actor``."""
        return self.signing.issue(actor=actor)

    async def mint(
        self,
        *,
        descriptor: UnitDescriptor,
        idempotency_key: str,
        principal: str = "operator",
    ) -> Envelope[MintReceipt]:
        return await self.provenance.mint(
            meta=_command(principal),
            descriptor=descriptor,
            idempotency_key=idempotency_key,
        )

    async def append_event(
        self,
        *,
        unit_id: str,
        event: EventDraft,
        capability: ActorCapability,
    ) -> Envelope[AppendReceipt]:
        return await self.provenance.append_event(
            meta=_command(capability.actor),
            unit_id=unit_id,
            event=event,
            capability=capability,
        )

    def submit_sample(
        self, sample: SensorSample | LocationSample, *, principal: str = "oracle"
    ) -> Envelope[SubmitReceipt]:
        return self.oracle.submit(meta=_command(principal), sample=sample)

    async def verify_sample(
        self, sample_id: str, *, principal: str = "oracle"
    ) -> Envelope[VerificationOutcome]:
        return await self.oracle.verify(meta=_command(principal), sample_id=sample_id)

    async def create_escrow(
        self,
        *,
        unit_id: str,
        payer: ActorCapability,
        payee: str,
        amount: Decimal,
        conditions: SlaConditions,
        expected_delivery_by: datetime,
        shipment_id: str | None = None,
        device_ids: Sequence[str] = (),
    ) -> Envelope[EscrowAgreement]:
        return await self.escrow.create(
            meta=_command(payer.actor),
            unit_id=unit_id,
            payer=payer,
            payee=payee,
            amount=amount,
            conditions=conditions,
            expected_delivery_by=expected_delivery_by,
            shipment_id=shipment_id,
            device_ids=device_ids,
        )

    async def evaluate_and_settle(
        self, escrow_id: str, *, principal: str = "operator"
    ) -> Envelope[SettlementOutcome]:
        return await self.escrow.evaluate_and_settle(
            meta=_command(principal), escrow_id=escrow_id
        )

    def history(
        self, unit_id: str, *, principal: str = "operator"
    ) -> Envelope[tuple[ProvenanceEvent, ...]]:
        return self.provenance.history(meta=_query(principal), unit_id=unit_id)

    def snapshot(
        self, unit_id: str, *, principal: str = "operator"
    ) -> Envelope[UnitSnapshot]:
        return self.provenance.current_snapshot(meta=_query(principal), unit_id=unit_id)

    def record(
        self, unit_id: str, *, principal: str = "operator"
    ) -> Envelope[ProvenanceRecord]:
        return self.provenance.get_record(meta=_query(principal), unit_id=unit_id)

    def sample(
        self, sample_id: str, *, principal: str = "operator"
    ) -> Envelope[StoredSample]:
        return self.oracle.get_sample(meta=_query(principal), sample_id=sample_id)

    def score(
        self,
        unit_id: str,
        *,
        now: datetime | None = None,
        principal: str = "operator",
    ) -> Envelope[ScoreReport]:
        return self.scorer.score(meta=_query(principal), unit_id=unit_id, now=now)

    def status(
        self, escrow_id: str, *, principal: str = "operator"
    ) -> Envelope[EscrowAgreement]:
        return self.escrow.status(meta=_query(principal), escrow_id=escrow_id)

    def activity(
        self, *, limit: int | None = None, principal: str = "operator"
    ) -> Envelope[tuple[ActivityEntry, ...]]:
        return self.activity_feed.recent(meta=_query(principal), limit=limit)

    def health(self) -> CoreHealthResult:
        return evaluate_core_health(components=self._components)

    def scheduler(self, *, clock: Clock = utc_now) -> SettlementScheduler:
        """Return a settlement scheduler bound to this runtime's services."""
        return SettlementScheduler(
            engine=self.escrow,
            oracle=self.oracle,
            settings=resolve_escrow_engine_settings(self._settings).scheduler,
            clock=clock,
        )

    def dispose(self) -> None:
        """Release pooled resources held by built components."""
        substrate = self._components.get("substrate_sql")
        if substrate is not None:
            substrate.dispose()

    def _component(self, component_id: str) -> Any:
        try:
            return self._components[component_id]
        except KeyError as exc:
            raise RuntimeError(f"component not instantiated: {component_id}") from exc


def _command(principal: str) -> EnvelopeMeta:
    return new_meta(kind=EnvelopeKind.COMMAND, source=_SOURCE, principal=principal)


def _query(principal: str) -> EnvelopeMeta:
    return new_meta(kind=EnvelopeKind.QUERY, source=_SOURCE, principal=principal)
