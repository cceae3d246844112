"""Behavior tests for the in-process hash-chained ledger."""

from __future__ import annotations

import asyncio

import pytest

from resources.adapters.ledger import (
    GENESIS_REF,
    InMemoryLedgerAdapter,
    LedgerUnavailableError,
)


def test_commit_chains_entries_and_confirms() -> None:
    """Each commit should link to its predecessor and confirm afterwards."""
    ledger = InMemoryLedgerAdapter()
    first = asyncio.run(ledger.commit(payload={"op": "mint", "sku": "A"}))
    second = asyncio.run(ledger.commit(payload={"op": "event", "sku": "A"}))

    entries = ledger.entries
    assert entries[0].previous_ref == GENESIS_REF
    assert entries[1].previous_ref == first
    assert first != second
    assert ledger.verify_chain() is True
    assert asyncio.run(ledger.confirm(proof_ref=second)) is True
    assert asyncio.run(ledger.confirm(proof_ref="f" * 64)) is False


def test_unavailable_ledger_raises_connection_error() -> None:
    """Commits against an unreachable ledger should raise and write nothing."""
    ledger = InMemoryLedgerAdapter()
    ledger.set_available(False)

    with pytest.raises(ConnectionError):
        asyncio.run(ledger.commit(payload={"op": "mint"}))
    with pytest.raises(LedgerUnavailableError):
        asyncio.run(ledger.confirm(proof_ref=GENESIS_REF))
    assert ledger.entries == ()
    assert ledger.health().adapter_ready is False


def test_rejected_reference_never_confirms() -> None:
    ledger = InMemoryLedgerAdapter()
    ref = asyncio.run(ledger.commit(payload={"op": "sample"}))
    ledger.reject(ref)
    assert asyncio.run(ledger.confirm(proof_ref=ref)) is False


def test_payload_key_order_does_not_change_reference() -> None:
    """Canonical serialization should make key order irrelevant."""
    left = InMemoryLedgerAdapter()
    right = InMemoryLedgerAdapter()
    a = asyncio.run(left.commit(payload={"a": 1, "b": 2}))
    b = asyncio.run(right.commit(payload={"b": 2, "a": 1}))
    assert a == b
