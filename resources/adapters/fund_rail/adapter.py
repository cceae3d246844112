"""Fund-transfer rail protocol, errors and transfer record."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class FundRailError(Exception):
    """Base exception for fund-transfer rail failures."""


class FundRailUnavailableError(FundRailError, ConnectionError):
    """The rail could not be reached; the transfer did not happen."""


class FundTransfer(BaseModel):
    """One executed transfer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tx_ref: str
    idempotency_key: str
    source: str
    destination: str
    amount: Decimal
    executed_at: datetime


class FundRailHealthResult(BaseModel):
    """Readiness payload for the fund-transfer rail."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    adapter_ready: bool
    detail: str


@runtime_checkable
class FundTransferRail(Protocol):
    """Moves escrowed value between parties.

    Repeating a call with the same ``idempotency_key`` returns the original
    ``tx_ref`` without moving funds again.
    """

    async def transfer(
        self,
        *,
        source: str,
        destination: str,
        amount: Decimal,
        idempotency_key: str,
    ) -> str:
        """Execute one transfer and return its reference."""

    def health(self) -> FundRailHealthResult:
        """Return adapter health state."""
