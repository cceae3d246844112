"""In-process fund-transfer rail used by tests and local runs."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from decimal import Decimal
from threading import Lock

from packages.protrack_shared.ids import generate_ulid_str
from resources.adapters.fund_rail.adapter import (
    FundRailHealthResult,
    FundRailUnavailableError,
    FundTransfer,
    FundTransferRail,
)


class InMemoryFundTransferRail(FundTransferRail):
    """Idempotent transfer log with per-party net balances."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._by_key: dict[str, FundTransfer] = {}
        self._transfers: list[FundTransfer] = []
        self._balances: defaultdict[str, Decimal] = defaultdict(Decimal)
        self._available = True

    async def transfer(
        self,
        *,
        source: str,
        destination: str,
        amount: Decimal,
        idempotency_key: str,
    ) -> str:
        if not self._available:
            raise FundRailUnavailableError("fund rail unavailable")
        with self._lock:
            existing = self._by_key.get(idempotency_key)
            if existing is not None:
                return existing.tx_ref
            record = FundTransfer(
                tx_ref=generate_ulid_str(),
                idempotency_key=idempotency_key,
                source=source,
                destination=destination,
                amount=amount,
                executed_at=datetime.now(UTC),
            )
            self._by_key[idempotency_key] = record
            self._transfers.append(record)
            self._balances[source] -= amount
            self._balances[destination] += amount
        return record.tx_ref

    def health(self) -> FundRailHealthResult:
        if self._available:
            return FundRailHealthResult(adapter_ready=True, detail="ok")
        return FundRailHealthResult(adapter_ready=False, detail="fund rail unavailable")

    def set_available(self, available: bool) -> None:
        """Toggle simulated reachability."""
        self._available = available

    @property
    def transfers(self) -> tuple[FundTransfer, ...]:
        with self._lock:
            return tuple(self._transfers)

    def balance_of(self, party: str) -> Decimal:
        """Net amount received by ``party`` across all transfers."""
        with self._lock:
            return self._balances[party]
