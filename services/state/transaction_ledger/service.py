"""Authoritative in-process Python API for the Transaction Ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.envelope import Envelope, EnvelopeMeta
from packages.protrack_shared.logging import get_logger
from services.state.transaction_ledger.domain import (
    ActivityEntry,
    ActivityKind,
    ActivityStatus,
)

_LOGGER = get_logger(__name__)


class TransactionLedgerService(ABC):
    """Bounded, most-recent-first projection of confirmed operations."""

    @abstractmethod
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
        """Mirror one operation into the activity feed."""

    @abstractmethod
    def recent(
        self, *, meta: EnvelopeMeta, limit: int | None = None
    ) -> Envelope[tuple[ActivityEntry, ...]]:
        """Return retained entries, most recent first."""


def build_transaction_ledger_service(
    *, settings: ProTrackSettings
) -> TransactionLedgerService:
    """Build the default in-memory Transaction Ledger."""
    from services.state.transaction_ledger.config import (
        resolve_transaction_ledger_settings,
    )
    from services.state.transaction_ledger.implementation import (
        InMemoryTransactionLedgerService,
    )

    return InMemoryTransactionLedgerService(
        settings=resolve_transaction_ledger_settings(settings)
    )


def mirror_activity(
    ledger: TransactionLedgerService | None,
    *,
    meta: EnvelopeMeta,
    kind: ActivityKind,
    description: str,
    reference: str = "",
    proof_ref: str | None = None,
    status: ActivityStatus = ActivityStatus.CONFIRMED,
) -> None:
    """Record one feed entry on behalf of another service.

    The feed is a projection, so a rejected entry is logged and never fails
    the operation that produced it.
    """
    if ledger is None:
        return
    result = ledger.record(
        meta=meta,
        kind=kind,
        description=description,
        reference=reference,
        proof_ref=proof_ref,
        status=status,
    )
    if not result.ok:
        _LOGGER.warning(
            "activity feed rejected entry: kind=%s errors=%s",
            kind.value,
            result.error_codes,
        )
