"""Behavior tests for fund-transfer rails."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from resources.adapters.fund_rail import (
    FundRailUnavailableError,
    InMemoryFundTransferRail,
    SqlFundTransferRail,
)
from resources.substrates.sql import SharedSqlSubstrate, SqlSettings


def _sql_rail() -> SqlFundTransferRail:
    return SqlFundTransferRail(substrate=SharedSqlSubstrate(settings=SqlSettings()))


@pytest.mark.parametrize("build", [InMemoryFundTransferRail, _sql_rail])
def test_repeated_idempotency_key_moves_funds_once(build) -> None:
    """A retried transfer should return the first reference."""
    rail = build()

    async def run() -> tuple[str, str]:
        first = await rail.transfer(
            source="escrow",
            destination="carrier",
            amount=Decimal("1.5"),
            idempotency_key="E1:payee",
        )
        second = await rail.transfer(
            source="escrow",
            destination="carrier",
            amount=Decimal("1.5"),
            idempotency_key="E1:payee",
        )
        return first, second

    first, second = asyncio.run(run())
    assert first == second
    assert rail.health().adapter_ready is True


def test_in_memory_rail_tracks_balances() -> None:
    rail = InMemoryFundTransferRail()
    asyncio.run(
        rail.transfer(
            source="escrow", destination="carrier", amount=Decimal("2"), idempotency_key="k"
        )
    )
    assert rail.balance_of("carrier") == Decimal("2")
    assert rail.balance_of("escrow") == Decimal("-2")
    assert len(rail.transfers) == 1


def test_sql_rail_lists_persisted_transfers() -> None:
    rail = _sql_rail()
    asyncio.run(
        rail.transfer(
            source="escrow", destination="buyer", amount=Decimal("0.3"), idempotency_key="k"
        )
    )
    (transfer,) = rail.list_transfers()
    assert transfer.destination == "buyer"
    assert transfer.amount == Decimal("0.3")


def test_unavailable_rail_raises_without_recording() -> None:
    rail = InMemoryFundTransferRail()
    rail.set_available(False)
    with pytest.raises(FundRailUnavailableError):
        asyncio.run(
            rail.transfer(
                source="escrow", destination="x", amount=Decimal("1"), idempotency_key="k"
            )
        )
    assert rail.transfers == ()
