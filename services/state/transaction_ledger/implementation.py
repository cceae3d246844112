"""In-memory Transaction Ledger implementation."""

from __future__ import annotations

from collections import deque
from threading import Lock

from packages.protrack_shared.envelope import Envelope, EnvelopeMeta, failure, success
from packages.protrack_shared.ids import generate_ulid_str
from packages.protrack_shared.logging import get_logger, public_api_instrumented
from packages.protrack_shared.time_utils import Clock, utc_now
from packages.protrack_shared.validation import validate_request
from services.state.transaction_ledger.component import SERVICE_COMPONENT_ID
from services.state.transaction_ledger.config import TransactionLedgerSettings
from services.state.transaction_ledger.domain import (
    ActivityEntry,
    ActivityKind,
    ActivityStatus,
)
from services.state.transaction_ledger.service import TransactionLedgerService
from services.state.transaction_ledger.validation import (
    RecentActivityRequest,
    RecordActivityRequest,
)

_LOGGER = get_logger(__name__)


class InMemoryTransactionLedgerService(TransactionLedgerService):
    """Activity feed kept in a bounded deque; oldest entries fall off."""

    def __init__(
        self, *, settings: TransactionLedgerSettings, clock: Clock = utc_now
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._lock = Lock()
        self._entries: deque[ActivityEntry] = deque(maxlen=settings.max_entries)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("reference",),
    )
    def record(
        self,
        *,
        meta: EnvelopeMeta,
        kind: ActivityKind,
        description: str,
        reference: str = "",
        proof_ref: str | None = None,
        status: ActivityStatus = ActivityStatus.CONFIRMED,
    ) -> Envelope[ActivityEntry]:
        request, errors = validate_request(
            meta=meta,
            model=RecordActivityRequest,
            payload={
                "kind": kind,
                "description": description,
                "reference": reference,
                "proof_ref": proof_ref,
                "status": status,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        entry = ActivityEntry(
            entry_id=generate_ulid_str(),
            kind=request.kind,
            description=request.description,
            reference=request.reference,
            proof_ref=request.proof_ref,
            status=request.status,
            recorded_at=self._clock(),
        )
        with self._lock:
            self._entries.appendleft(entry)
        return success(meta=meta, payload=entry)

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def recent(
        self, *, meta: EnvelopeMeta, limit: int | None = None
    ) -> Envelope[tuple[ActivityEntry, ...]]:
        request, errors = validate_request(
            meta=meta, model=RecentActivityRequest, payload={"limit": limit}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        with self._lock:
            entries = tuple(self._entries)
        if request.limit is not None:
            entries = entries[: request.limit]
        return success(meta=meta, payload=entries)
