"""Transport-neutral protocol interfaces for Escrow Engine persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from services.action.escrow_engine.domain import EscrowAgreement, Settlement


class EscrowRepository(Protocol):
    """Escrow agreements and their single settlement."""

    def insert(self, *, escrow: EscrowAgreement) -> None:
        """Persist one new ``OPEN`` escrow."""

    def get(self, *, escrow_id: str) -> EscrowAgreement | None:
        """Read one escrow by id."""

    def record_plan(self, *, escrow_id: str, plan: Settlement) -> bool:
        """Store the payout plan of an ``OPEN`` escrow that has none yet.

        Returns ``False`` when the escrow is settled or already has a plan.
        """

    def settle(self, *, escrow_id: str, settlement: Settlement) -> bool:
        """Record ``settlement`` if the escrow is still ``OPEN``.

        Returns ``False`` when another writer settled it first.
        """

    def list_open(self, *, due_before: datetime | None = None) -> tuple[EscrowAgreement, ...]:
        """Return open escrows, optionally only those due by ``due_before``."""

    def list_for_unit(self, *, unit_id: str) -> tuple[EscrowAgreement, ...]:
        """Return every escrow bound to ``unit_id`` in creation order."""
