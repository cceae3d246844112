"""Transport-neutral protocol interfaces for the Provenance Store."""

from __future__ import annotations

from typing import Protocol

from services.state.provenance_store.domain import ProvenanceEvent, StoredUnit


class DuplicateIdempotencyKeyError(Exception):
    """A unit already exists for the supplied idempotency key."""


class SequenceConflictError(Exception):
    """Another writer already stored an event at this sequence."""


class ProvenanceRepository(Protocol):
    """Persistence for units and their append-only event logs."""

    def insert_unit(self, *, unit: StoredUnit) -> None:
        """Persist one newly minted unit."""

    def get_unit(self, *, unit_id: str) -> StoredUnit | None:
        """Read one unit by id."""

    def get_unit_by_idempotency_key(self, *, idempotency_key: str) -> StoredUnit | None:
        """Read the unit minted under ``idempotency_key``."""

    def append_event(self, *, unit_id: str, event: ProvenanceEvent) -> None:
        """Append one event at ``event.sequence``."""

    def list_events(
        self, *, unit_id: str, after_sequence: int, limit: int
    ) -> tuple[ProvenanceEvent, ...]:
        """Return up to ``limit`` events with sequence above ``after_sequence``."""

    def latest_event(
        self, *, unit_id: str, kinds: frozenset[str] | None = None
    ) -> ProvenanceEvent | None:
        """Return the newest event, optionally restricted to ``kinds``."""
