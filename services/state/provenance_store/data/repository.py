"""Repositories for Provenance Store units and event logs."""

from __future__ import annotations

from decimal import Decimal
from threading import Lock
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from packages.protrack_shared.time_utils import ensure_utc
from resources.substrates.sql import SqlSubstrate, transactional_session
from services.state.provenance_store.domain import ProvenanceEvent, StoredUnit
from services.state.provenance_store.interfaces import (
    DuplicateIdempotencyKeyError,
    ProvenanceRepository,
    SequenceConflictError,
)

from .schema import metadata, provenance_events, units


class InMemoryProvenanceRepository(ProvenanceRepository):
    """Process-local repository used by tests and the memory backend."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._units: dict[str, StoredUnit] = {}
        self._by_key: dict[str, str] = {}
        self._events: dict[str, list[ProvenanceEvent]] = {}

    def insert_unit(self, *, unit: StoredUnit) -> None:
        with self._lock:
            if unit.idempotency_key in self._by_key:
                raise DuplicateIdempotencyKeyError(unit.idempotency_key)
            self._units[unit.unit_id] = unit
            self._by_key[unit.idempotency_key] = unit.unit_id
            self._events[unit.unit_id] = []

    def get_unit(self, *, unit_id: str) -> StoredUnit | None:
        with self._lock:
            return self._units.get(unit_id)

    def get_unit_by_idempotency_key(self, *, idempotency_key: str) -> StoredUnit | None:
        with self._lock:
            unit_id = self._by_key.get(idempotency_key)
            return None if unit_id is None else self._units[unit_id]

    def append_event(self, *, unit_id: str, event: ProvenanceEvent) -> None:
        with self._lock:
            log = self._events[unit_id]
            if event.sequence != len(log) + 1:
                raise SequenceConflictError(f"{unit_id}:{event.sequence}")
            log.append(event)

    def list_events(
        self, *, unit_id: str, after_sequence: int, limit: int
    ) -> tuple[ProvenanceEvent, ...]:
        with self._lock:
            log = self._events.get(unit_id, [])
            return tuple(log[after_sequence : after_sequence + limit])

    def latest_event(
        self, *, unit_id: str, kinds: frozenset[str] | None = None
    ) -> ProvenanceEvent | None:
        with self._lock:
            for event in reversed(self._events.get(unit_id, [])):
                if kinds is None or event.kind in kinds:
                    return event
        return None


class SqlProvenanceRepository(ProvenanceRepository):
    """SQL repository over Provenance Store tables."""

    def __init__(self, substrate: SqlSubstrate) -> None:
        self._sessions = substrate.session_factory
        substrate.create_schema(metadata)

    def insert_unit(self, *, unit: StoredUnit) -> None:
        try:
            with transactional_session(self._sessions) as session:
                session.execute(
                    insert(units).values(
                        unit_id=unit.unit_id,
                        idempotency_key=unit.idempotency_key,
                        name=unit.name,
                        sku=unit.sku,
                        batch_id=unit.batch_id,
                        manufacturer=unit.manufacturer,
                        category=unit.category,
                        created_at=unit.created_at,
                        expiry_at=unit.expiry_at,
                        location=unit.location,
                        value=None if unit.value is None else str(unit.value),
                        mint_proof_ref=unit.mint_proof_ref,
                    )
                )
        except IntegrityError as exc:
            raise DuplicateIdempotencyKeyError(unit.idempotency_key) from exc

    def get_unit(self, *, unit_id: str) -> StoredUnit | None:
        with transactional_session(self._sessions) as session:
            row = (
                session.execute(select(units).where(units.c.unit_id == unit_id))
                .mappings()
                .one_or_none()
            )
        return None if row is None else _to_unit(row)

    def get_unit_by_idempotency_key(self, *, idempotency_key: str) -> StoredUnit | None:
        with transactional_session(self._sessions) as session:
            row = (
                session.execute(
                    select(units).where(units.c.idempotency_key == idempotency_key)
                )
                .mappings()
                .one_or_none()
            )
        return None if row is None else _to_unit(row)

    def append_event(self, *, unit_id: str, event: ProvenanceEvent) -> None:
        try:
            with transactional_session(self._sessions) as session:
                session.execute(
                    insert(provenance_events).values(
                        unit_id=unit_id,
                        sequence=event.sequence,
                        kind=event.kind,
                        description=event.description,
                        location=event.location,
                        payload=event.payload,
                        actor=event.actor,
                        occurred_at=event.occurred_at,
                        proof_ref=event.proof_ref,
                    )
                )
        except IntegrityError as exc:
            raise SequenceConflictError(f"{unit_id}:{event.sequence}") from exc

    def list_events(
        self, *, unit_id: str, after_sequence: int, limit: int
    ) -> tuple[ProvenanceEvent, ...]:
        with transactional_session(self._sessions) as session:
            rows = (
                session.execute(
                    select(provenance_events)
                    .where(
                        provenance_events.c.unit_id == unit_id,
                        provenance_events.c.sequence > after_sequence,
                    )
                    .order_by(provenance_events.c.sequence)
                    .limit(limit)
                )
                .mappings()
                .all()
            )
        return tuple(_to_event(row) for row in rows)

    def latest_event(
        self, *, unit_id: str, kinds: frozenset[str] | None = None
    ) -> ProvenanceEvent | None:
        stmt = select(provenance_events).where(provenance_events.c.unit_id == unit_id)
        if kinds is not None:
            stmt = stmt.where(provenance_events.c.kind.in_(sorted(kinds)))
        stmt = stmt.order_by(provenance_events.c.sequence.desc()).limit(1)
        with transactional_session(self._sessions) as session:
            row = session.execute(stmt).mappings().one_or_none()
        return None if row is None else _to_event(row)


def _to_unit(row: Any) -> StoredUnit:
    """Map one SQL row to a stored unit."""
    expiry_at = row["expiry_at"]
    return StoredUnit(
        unit_id=str(row["unit_id"]),
        idempotency_key=str(row["idempotency_key"]),
        name=str(row["name"]),
        sku=str(row["sku"]),
        batch_id=str(row["batch_id"]),
        manufacturer=str(row["manufacturer"]),
        category=str(row["category"]),
        created_at=ensure_utc(row["created_at"]),
        expiry_at=None if expiry_at is None else ensure_utc(expiry_at),
        location=str(row["location"]),
        value=None if row["value"] is None else Decimal(row["value"]),
        mint_proof_ref=str(row["mint_proof_ref"]),
    )


def _to_event(row: Any) -> ProvenanceEvent:
    """Map one SQL row to a provenance event."""
    return ProvenanceEvent(
        sequence=int(row["sequence"]),
        kind=str(row["kind"]),
        description=str(row["description"]),
        location=str(row["location"]),
        payload=dict(row["payload"]),
        actor=str(row["actor"]),
        occurred_at=ensure_utc(row["occurred_at"]),
        proof_ref=str(row["proof_ref"]),
    )
