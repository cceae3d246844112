"""Repositories for OracleIngest sample windows."""

from __future__ import annotations

from bisect import insort
from collections.abc import Iterable
from datetime import datetime
from threading import Lock
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from packages.protrack_shared.time_utils import ensure_utc
from resources.substrates.sql import SqlSubstrate, transactional_session
from services.state.oracle_ingest.domain import SAMPLE_ADAPTER, SampleStatus, StoredSample
from services.state.oracle_ingest.interfaces import (
    DuplicateObservationError,
    SampleRepository,
)

from .schema import metadata, oracle_samples


class InMemorySampleRepository(SampleRepository):
    """Process-local repository used by tests and the memory backend."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._samples: dict[str, StoredSample] = {}
        # source_key -> sorted (observed_at, sample_id)
        self._windows: dict[str, list[tuple[int, str]]] = {}

    def insert(self, *, sample: StoredSample, window_size: int) -> int:
        with self._lock:
            window = self._windows.setdefault(sample.source_key, [])
            if any(observed == sample.observed_at for observed, _ in window):
                raise DuplicateObservationError(
                    f"{sample.source_key}@{sample.observed_at}"
                )
            insort(window, (sample.observed_at, sample.sample_id))
            self._samples[sample.sample_id] = sample

            others = [item for item in window if item[1] != sample.sample_id]
            overflow = len(window) - window_size
            evicted = others[:overflow] if overflow > 0 else []
            for item in evicted:
                window.remove(item)
                del self._samples[item[1]]
            return len(evicted)

    def get(self, *, sample_id: str) -> StoredSample | None:
        with self._lock:
            return self._samples.get(sample_id)

    def transition(
        self,
        *,
        sample_id: str,
        status: SampleStatus,
        proof_ref: str | None = None,
    ) -> bool:
        with self._lock:
            current = self._samples.get(sample_id)
            if current is None or current.status != SampleStatus.PENDING:
                return False
            self._samples[sample_id] = current.model_copy(
                update={"status": status, "proof_ref": proof_ref}
            )
            return True

    def record_proof(self, *, sample_id: str, proof_ref: str) -> bool:
        with self._lock:
            current = self._samples.get(sample_id)
            if current is None or current.status != SampleStatus.PENDING:
                return False
            self._samples[sample_id] = current.model_copy(update={"proof_ref": proof_ref})
            return True

    def list_pending(
        self, *, submitted_before: datetime | None = None
    ) -> tuple[StoredSample, ...]:
        with self._lock:
            samples = list(self._samples.values())
        return tuple(
            sample
            for sample in sorted(samples, key=lambda item: item.submitted_at)
            if sample.status == SampleStatus.PENDING
            and (submitted_before is None or sample.submitted_at < submitted_before)
        )

    def list_verified(
        self,
        *,
        source_keys: Iterable[str],
        since: int | None = None,
        until: int | None = None,
    ) -> tuple[StoredSample, ...]:
        keys = set(source_keys)
        with self._lock:
            matches = [
                sample
                for sample in self._samples.values()
                if sample.source_key in keys
                and sample.status == SampleStatus.VERIFIED
                and (since is None or sample.observed_at >= since)
                and (until is None or sample.observed_at <= until)
            ]
        return tuple(sorted(matches, key=lambda item: (item.observed_at, item.sample_id)))


class SqlSampleRepository(SampleRepository):
    """SQL repository over the ``oracle_samples`` table."""

    def __init__(self, substrate: SqlSubstrate) -> None:
        self._sessions = substrate.session_factory
        substrate.create_schema(metadata)

    def insert(self, *, sample: StoredSample, window_size: int) -> int:
        try:
            with transactional_session(self._sessions) as session:
                session.execute(
                    insert(oracle_samples).values(
                        sample_id=sample.sample_id,
                        source_key=sample.source_key,
                        kind=sample.sample.kind,
                        observed_at=sample.observed_at,
                        body=sample.sample.model_dump(mode="json"),
                        status=sample.status.value,
                        submitted_at=sample.submitted_at,
                        proof_ref=sample.proof_ref,
                    )
                )
                stale_ids = (
                    session.execute(
                        select(oracle_samples.c.sample_id)
                        .where(
                            oracle_samples.c.source_key == sample.source_key,
                            oracle_samples.c.sample_id != sample.sample_id,
                        )
                        .order_by(
                            oracle_samples.c.observed_at.desc(),
                            oracle_samples.c.sample_id.desc(),
                        )
                        .offset(window_size - 1)
                    )
                    .scalars()
                    .all()
                )
                if stale_ids:
                    session.execute(
                        delete(oracle_samples).where(
                            oracle_samples.c.sample_id.in_(stale_ids)
                        )
                    )
        except IntegrityError as exc:
            raise DuplicateObservationError(
                f"{sample.source_key}@{sample.observed_at}"
            ) from exc
        return len(stale_ids)

    def get(self, *, sample_id: str) -> StoredSample | None:
        with transactional_session(self._sessions) as session:
            row = (
                session.execute(
                    select(oracle_samples).where(oracle_samples.c.sample_id == sample_id)
                )
                .mappings()
                .one_or_none()
            )
        return None if row is None else _to_sample(row)

    def transition(
        self,
        *,
        sample_id: str,
        status: SampleStatus,
        proof_ref: str | None = None,
    ) -> bool:
        with transactional_session(self._sessions) as session:
            result = session.execute(
                update(oracle_samples)
                .where(
                    oracle_samples.c.sample_id == sample_id,
                    oracle_samples.c.status == SampleStatus.PENDING.value,
                )
                .values(status=status.value, proof_ref=proof_ref)
            )
        return result.rowcount == 1

    def record_proof(self, *, sample_id: str, proof_ref: str) -> bool:
        with transactional_session(self._sessions) as session:
            result = session.execute(
                update(oracle_samples)
                .where(
                    oracle_samples.c.sample_id == sample_id,
                    oracle_samples.c.status == SampleStatus.PENDING.value,
                )
                .values(proof_ref=proof_ref)
            )
        return result.rowcount == 1

    def list_pending(
        self, *, submitted_before: datetime | None = None
    ) -> tuple[StoredSample, ...]:
        stmt = select(oracle_samples).where(
            oracle_samples.c.status == SampleStatus.PENDING.value
        )
        if submitted_before is not None:
            stmt = stmt.where(oracle_samples.c.submitted_at < submitted_before)
        with transactional_session(self._sessions) as session:
            rows = session.execute(stmt.order_by(oracle_samples.c.submitted_at)).mappings().all()
        return tuple(_to_sample(row) for row in rows)

    def list_verified(
        self,
        *,
        source_keys: Iterable[str],
        since: int | None = None,
        until: int | None = None,
    ) -> tuple[StoredSample, ...]:
        keys = sorted(set(source_keys))
        if not keys:
            return ()
        stmt = select(oracle_samples).where(
            oracle_samples.c.source_key.in_(keys),
            oracle_samples.c.status == SampleStatus.VERIFIED.value,
        )
        if since is not None:
            stmt = stmt.where(oracle_samples.c.observed_at >= since)
        if until is not None:
            stmt = stmt.where(oracle_samples.c.observed_at <= until)
        stmt = stmt.order_by(oracle_samples.c.observed_at, oracle_samples.c.sample_id)
        with transactional_session(self._sessions) as session:
            rows = session.execute(stmt).mappings().all()
        return tuple(_to_sample(row) for row in rows)


def _to_sample(row: Any) -> StoredSample:
    """Map one SQL row to a stored sample."""
    return StoredSample(
        sample_id=str(row["sample_id"]),
        sample=SAMPLE_ADAPTER.validate_python(row["body"]),
        status=SampleStatus(row["status"]),
        submitted_at=ensure_utc(row["submitted_at"]),
        proof_ref=row["proof_ref"],
    )
