"""Concrete Provenance Store implementation."""

from __future__ import annotations

from collections.abc import Iterator

from packages.protrack_shared.envelope import Envelope, EnvelopeMeta, failure, success
from packages.protrack_shared.errors import (
    codes,
    conflict_error,
    dependency_error,
    ledger_unavailable_error,
    stale_actor_error,
    unknown_unit_error,
)
from packages.protrack_shared.ids import generate_ulid_str
from packages.protrack_shared.locks import KeyedLocks
from packages.protrack_shared.logging import get_logger, public_api_instrumented
from packages.protrack_shared.time_utils import Clock, utc_now
from packages.protrack_shared.validation import validate_request
from resources.adapters.ledger import LedgerAdapter
from resources.adapters.signing import ActorCapability, SigningProvider
from services.state.provenance_store.component import SERVICE_COMPONENT_ID
from services.state.provenance_store.config import ProvenanceStoreSettings
from services.state.provenance_store.domain import (
    AppendReceipt,
    EventDraft,
    HealthStatus,
    MintReceipt,
    ProvenanceEvent,
    ProvenanceRecord,
    StoredUnit,
    UnitDescriptor,
    UnitSnapshot,
    fold_snapshot,
    next_custodian,
)
from services.state.provenance_store.interfaces import (
    DuplicateIdempotencyKeyError,
    ProvenanceRepository,
    SequenceConflictError,
)
from services.state.provenance_store.service import ProvenanceStoreService
from services.state.provenance_store.validation import (
    AppendEventRequest,
    MintRequest,
    UnitLookupRequest,
)
from services.state.transaction_ledger import (
    ActivityKind,
    TransactionLedgerService,
    mirror_activity,
)

_LOGGER = get_logger(__name__)


class DefaultProvenanceStoreService(ProvenanceStoreService):
    """Provenance Store that anchors every write before persisting it.

    Writes to one unit are serialized by a per-unit lock; reads take no lock
    and see only fully committed events.
    """

    def __init__(
        self,
        *,
        settings: ProvenanceStoreSettings,
        repository: ProvenanceRepository,
        ledger: LedgerAdapter,
        signing: SigningProvider,
        activity: TransactionLedgerService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._ledger = ledger
        self._signing = signing
        self._activity = activity
        self._clock = clock
        self._locks = KeyedLocks()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("idempotency_key",),
    )
    async def mint(
        self,
        *,
        meta: EnvelopeMeta,
        descriptor: UnitDescriptor,
        idempotency_key: str,
    ) -> Envelope[MintReceipt]:
        """Anchor and persist one new unit.

        Retrying with the same idempotency key after a success fails with
        ``DUPLICATE_SKU_BATCH`` and carries the original receipt.
        """
        request, errors = validate_request(
            meta=meta,
            model=MintRequest,
            payload={"descriptor": descriptor, "idempotency_key": idempotency_key},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        async with self._locks.hold(f"mint:{request.idempotency_key}"):
            try:
                existing = self._repository.get_unit_by_idempotency_key(
                    idempotency_key=request.idempotency_key
                )
            except Exception as exc:  # noqa: BLE001
                return self._dependency_failure(meta=meta, operation="mint", exc=exc)
            if existing is not None:
                return _duplicate_mint(meta=meta, unit=existing)

            described = request.descriptor
            unit_id = generate_ulid_str()
            created_at = described.created_at or self._clock()
            try:
                proof_ref = await self._ledger.commit(
                    payload={
                        "op": "mint",
                        "unit_id": unit_id,
                        "idempotency_key": request.idempotency_key,
                        **described.model_dump(mode="json", exclude={"created_at"}),
                        "created_at": created_at.isoformat(),
                    }
                )
            except Exception as exc:  # noqa: BLE001
                return _ledger_failure(meta=meta, operation="mint", exc=exc)

            unit = StoredUnit(
                unit_id=unit_id,
                idempotency_key=request.idempotency_key,
                name=described.name,
                sku=described.sku,
                batch_id=described.batch_id,
                manufacturer=described.manufacturer,
                category=described.category,
                created_at=created_at,
                expiry_at=described.expiry_at,
                location=described.location,
                value=described.value,
                mint_proof_ref=proof_ref,
            )
            try:
                self._repository.insert_unit(unit=unit)
            except DuplicateIdempotencyKeyError:
                winner = self._repository.get_unit_by_idempotency_key(
                    idempotency_key=request.idempotency_key
                )
                return _duplicate_mint(meta=meta, unit=winner or unit)
            except Exception as exc:  # noqa: BLE001
                return self._dependency_failure(meta=meta, operation="mint", exc=exc)

        mirror_activity(
            self._activity,
            meta=meta,
            kind=ActivityKind.MINT,
            description=f"Minted {unit.name or unit.sku or 'unit'} ({unit.unit_id})",
            reference=unit.unit_id,
            proof_ref=proof_ref,
        )
        return success(meta=meta, payload=MintReceipt(unit_id=unit_id, proof_ref=proof_ref))

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("unit_id",),
    )
    async def append_event(
        self,
        *,
        meta: EnvelopeMeta,
        unit_id: str,
        event: EventDraft,
        capability: ActorCapability,
    ) -> Envelope[AppendReceipt]:
        """Anchor and append one event on behalf of the current custodian."""
        request, errors = validate_request(
            meta=meta,
            model=AppendEventRequest,
            payload={"unit_id": unit_id, "event": event, "capability": capability},
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        async with self._locks.hold(request.unit_id):
            try:
                unit = self._repository.get_unit(unit_id=request.unit_id)
                custody_event = (
                    None
                    if unit is None
                    else self._repository.latest_event(
                        unit_id=unit.unit_id,
                        kinds=self._settings.custody_event_kinds,
                    )
                )
                last = (
                    None
                    if unit is None
                    else self._repository.latest_event(unit_id=unit.unit_id)
                )
            except Exception as exc:  # noqa: BLE001
                return self._dependency_failure(
                    meta=meta, operation="append_event", exc=exc
                )
            if unit is None:
                return failure(meta=meta, errors=[unknown_unit_error(request.unit_id)])

            actor = request.capability.actor
            if not self._signing.authenticate(request.capability):
                return failure(
                    meta=meta,
                    errors=[stale_actor_error("capability failed authentication", actor=actor)],
                )
            custodian = (
                unit.manufacturer if custody_event is None else next_custodian(custody_event)
            )
            if actor != custodian:
                return failure(
                    meta=meta,
                    errors=[
                        stale_actor_error(
                            f"{actor} is not the current custodian of {unit.unit_id}",
                            actor=actor,
                        )
                    ],
                )

            floor = unit.created_at if last is None else last.occurred_at
            occurred_at = max(self._clock(), floor)
            sequence = 1 if last is None else last.sequence + 1
            draft = request.event
            try:
                proof_ref = await self._ledger.commit(
                    payload={
                        "op": "append_event",
                        "unit_id": unit.unit_id,
                        "sequence": sequence,
                        "actor": actor,
                        "occurred_at": occurred_at.isoformat(),
                        **draft.model_dump(mode="json"),
                    }
                )
            except Exception as exc:  # noqa: BLE001
                return _ledger_failure(meta=meta, operation="append_event", exc=exc)

            committed = ProvenanceEvent(
                sequence=sequence,
                kind=draft.kind,
                description=draft.description,
                location=draft.location,
                payload=draft.payload,
                actor=actor,
                occurred_at=occurred_at,
                proof_ref=proof_ref,
            )
            try:
                self._repository.append_event(unit_id=unit.unit_id, event=committed)
            except SequenceConflictError:
                return failure(
                    meta=meta,
                    errors=[
                        conflict_error(
                            f"concurrent append on unit {unit.unit_id}",
                            metadata={"unit_id": unit.unit_id},
                        )
                    ],
                )
            except Exception as exc:  # noqa: BLE001
                return self._dependency_failure(
                    meta=meta, operation="append_event", exc=exc
                )

        if draft.kind in self._settings.custody_event_kinds:
            mirror_activity(
                self._activity,
                meta=meta,
                kind=ActivityKind.TRANSFER,
                description=f"{draft.kind} {unit.unit_id} by {actor}",
                reference=unit.unit_id,
                proof_ref=proof_ref,
            )
        return success(
            meta=meta,
            payload=AppendReceipt(
                unit_id=unit.unit_id,
                sequence=sequence,
                proof_ref=proof_ref,
                occurred_at=occurred_at,
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("unit_id",),
    )
    def history(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> Envelope[tuple[ProvenanceEvent, ...]]:
        loaded = self._load(meta=meta, unit_id=unit_id)
        if isinstance(loaded, Envelope):
            return loaded
        _, events = loaded
        return success(meta=meta, payload=events)

    def iter_history(self, unit_id: str) -> Iterator[ProvenanceEvent]:
        page_size = self._settings.history_page_size
        after_sequence = 0
        while True:
            page = self._repository.list_events(
                unit_id=unit_id, after_sequence=after_sequence, limit=page_size
            )
            yield from page
            if len(page) < page_size:
                return
            after_sequence = page[-1].sequence

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("unit_id",),
    )
    def current_snapshot(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> Envelope[UnitSnapshot]:
        loaded = self._load(meta=meta, unit_id=unit_id)
        if isinstance(loaded, Envelope):
            return loaded
        unit, events = loaded
        return success(
            meta=meta,
            payload=fold_snapshot(
                unit, events, custody_event_kinds=self._settings.custody_event_kinds
            ),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("unit_id",),
    )
    def get_record(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> Envelope[ProvenanceRecord]:
        loaded = self._load(meta=meta, unit_id=unit_id)
        if isinstance(loaded, Envelope):
            return loaded
        unit, events = loaded
        snapshot = fold_snapshot(
            unit, events, custody_event_kinds=self._settings.custody_event_kinds
        )
        return success(
            meta=meta,
            payload=ProvenanceRecord(
                unit_id=unit.unit_id,
                name=unit.name,
                sku=unit.sku,
                batch_id=unit.batch_id,
                manufacturer=unit.manufacturer,
                category=unit.category,
                created_at=unit.created_at,
                expiry_at=unit.expiry_at,
                current_location=snapshot.location,
                current_value=snapshot.value,
                custodian=snapshot.custodian,
                mint_proof_ref=unit.mint_proof_ref,
                history=events,
            ),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        ledger = self._ledger.health()
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=True,
                ledger_ready=ledger.adapter_ready,
                detail=ledger.detail,
            ),
        )

    def _load(
        self, *, meta: EnvelopeMeta, unit_id: str
    ) -> tuple[StoredUnit, tuple[ProvenanceEvent, ...]] | Envelope:
        """Validate, then read one unit and its full history."""
        request, errors = validate_request(
            meta=meta, model=UnitLookupRequest, payload={"unit_id": unit_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        try:
            unit = self._repository.get_unit(unit_id=request.unit_id)
            if unit is None:
                return failure(meta=meta, errors=[unknown_unit_error(request.unit_id)])
            events = tuple(self.iter_history(unit.unit_id))
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="read", exc=exc)
        return unit, events

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[object]:
        """Map repository exceptions into dependency-category envelope errors."""
        _LOGGER.warning(
            "Provenance operation failed due to dependency error: operation=%s exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_UNAVAILABLE,
                    metadata={
                        "resource": "provenance_repository",
                        "exception_type": type(exc).__name__,
                    },
                )
            ],
        )


def _duplicate_mint(*, meta: EnvelopeMeta, unit: StoredUnit) -> Envelope[MintReceipt]:
    return failure(
        meta=meta,
        errors=[
            conflict_error(
                f"idempotency key already minted unit {unit.unit_id}",
                code=codes.DUPLICATE_SKU_BATCH,
                metadata={
                    "unit_id": unit.unit_id,
                    "idempotency_key": unit.idempotency_key,
                },
            )
        ],
        payload=MintReceipt(unit_id=unit.unit_id, proof_ref=unit.mint_proof_ref),
    )


def _ledger_failure(
    *, meta: EnvelopeMeta, operation: str, exc: Exception
) -> Envelope[object]:
    _LOGGER.warning(
        "Ledger commit failed; state unchanged: operation=%s exception_type=%s",
        operation,
        type(exc).__name__,
        exc_info=exc,
    )
    return failure(meta=meta, errors=[ledger_unavailable_error(operation, exc=exc)])
