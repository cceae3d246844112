"""Behavior tests for the SQL-persisted ledger adapter."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from resources.adapters.ledger import LedgerUnavailableError, SqlLedgerAdapter
from resources.substrates.sql import SharedSqlSubstrate, SqlSettings


def test_sql_ledger_persists_hash_chain() -> None:
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    ledger = SqlLedgerAdapter(substrate=substrate)

    refs = [
        asyncio.run(ledger.commit(payload={"op": "mint", "n": index}))
        for index in range(3)
    ]

    assert len(set(refs)) == 3
    assert ledger.verify_chain() is True
    assert all(asyncio.run(ledger.confirm(proof_ref=ref)) for ref in refs)
    assert asyncio.run(ledger.confirm(proof_ref="0" * 64)) is False
    assert ledger.health().adapter_ready is True


def test_sql_ledger_maps_database_errors_to_unavailable(monkeypatch) -> None:
    """Database failures should surface as a retryable ledger outage."""
    substrate = SharedSqlSubstrate(settings=SqlSettings())
    ledger = SqlLedgerAdapter(substrate=substrate)

    def broken_session():
        raise OperationalError("connect", {}, Exception("down"))

    monkeypatch.setattr(substrate, "_session_factory", broken_session)

    with pytest.raises(LedgerUnavailableError):
        asyncio.run(ledger.commit(payload={"op": "mint"}))
