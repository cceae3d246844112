"""Transport-neutral protocol interfaces for OracleIngest persistence."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from services.state.oracle_ingest.domain import SampleStatus, StoredSample


class DuplicateObservationError(Exception):
    """A sample already exists for this ``(source_key, observed_at)`` pair."""


class SampleRepository(Protocol):
    """Bounded per-source sample windows."""

    def insert(self, *, sample: StoredSample, window_size: int) -> int:
        """Store one sample, evict the source's oldest beyond ``window_size``.

        Returns the number of evicted samples.
        """

    def get(self, *, sample_id: str) -> StoredSample | None:
        """Read one sample by id."""

    def transition(
        self,
        *,
        sample_id: str,
        status: SampleStatus,
        proof_ref: str | None = None,
    ) -> bool:
        """Move a ``PENDING`` sample to ``status``; ``False`` when it was not pending."""

    def record_proof(self, *, sample_id: str, proof_ref: str) -> bool:
        """Attach the anchor reference to a ``PENDING`` sample before confirmation."""

    def list_pending(self, *, submitted_before: datetime | None = None) -> tuple[StoredSample, ...]:
        """Return pending samples, optionally only those submitted before a cutoff."""

    def list_verified(
        self,
        *,
        source_keys: Iterable[str],
        since: int | None = None,
        until: int | None = None,
    ) -> tuple[StoredSample, ...]:
        """Return verified samples for ``source_keys`` ordered by ``observed_at``."""
