"""In-process hash-chained ledger used by tests and local runs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from threading import Lock
from typing import Mapping

from resources.adapters.ledger.adapter import (
    GENESIS_REF,
    LedgerAdapter,
    LedgerHealthResult,
    LedgerUnavailableError,
    canonical_payload,
    chain_ref,
)


@dataclass(frozen=True)
class LedgerEntry:
    """One anchored commitment."""

    sequence: int
    proof_ref: str
    previous_ref: str
    body: str


class InMemoryLedgerAdapter(LedgerAdapter):
    """Hash-chained ledger held in process memory.

    ``set_available`` and ``reject`` let callers simulate an unreachable node
    or a commitment that never confirms.
    """

    def __init__(self, *, confirm_delay_seconds: float = 0.0) -> None:
        self._lock = Lock()
        self._entries: list[LedgerEntry] = []
        self._index: dict[str, LedgerEntry] = {}
        self._rejected: set[str] = set()
        self._available = True
        self._confirm_delay_seconds = confirm_delay_seconds

    async def commit(self, *, payload: Mapping[str, object]) -> str:
        self._require_available("commit")
        body = canonical_payload(payload)
        with self._lock:
            previous = self._entries[-1].proof_ref if self._entries else GENESIS_REF
            entry = LedgerEntry(
                sequence=len(self._entries) + 1,
                proof_ref=chain_ref(previous, body),
                previous_ref=previous,
                body=body,
            )
            self._entries.append(entry)
            self._index[entry.proof_ref] = entry
        return entry.proof_ref

    async def confirm(self, *, proof_ref: str) -> bool:
        self._require_available("confirm")
        if self._confirm_delay_seconds > 0:
            await asyncio.sleep(self._confirm_delay_seconds)
        with self._lock:
            return proof_ref in self._index and proof_ref not in self._rejected

    def health(self) -> LedgerHealthResult:
        if self._available:
            return LedgerHealthResult(adapter_ready=True, detail="ok")
        return LedgerHealthResult(adapter_ready=False, detail="ledger unavailable")

    def set_available(self, available: bool) -> None:
        """Toggle simulated reachability."""
        self._available = available

    def set_confirm_delay(self, seconds: float) -> None:
        """Delay every confirmation by ``seconds``."""
        self._confirm_delay_seconds = seconds

    def reject(self, proof_ref: str) -> None:
        """Make ``proof_ref`` report as unconfirmed."""
        with self._lock:
            self._rejected.add(proof_ref)

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def verify_chain(self) -> bool:
        """Recompute every link and report whether the chain is intact."""
        previous = GENESIS_REF
        for entry in self.entries:
            if entry.previous_ref != previous:
                return False
            if chain_ref(previous, entry.body) != entry.proof_ref:
                return False
            previous = entry.proof_ref
        return True

    def _require_available(self, operation: str) -> None:
        if not self._available:
            raise LedgerUnavailableError(f"ledger {operation} unavailable")
