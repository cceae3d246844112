"""Ledger anchoring adapter exports."""

from resources.adapters.ledger.adapter import (
    GENESIS_REF,
    LedgerAdapter,
    LedgerAdapterError,
    LedgerHealthResult,
    LedgerUnavailableError,
    canonical_payload,
    chain_ref,
)
from resources.adapters.ledger.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.adapters.ledger.config import LedgerAdapterSettings
from resources.adapters.ledger.memory_ledger import InMemoryLedgerAdapter, LedgerEntry
from resources.adapters.ledger.sql_ledger import SqlLedgerAdapter

__all__ = [
    "GENESIS_REF",
    "InMemoryLedgerAdapter",
    "LedgerAdapter",
    "LedgerAdapterError",
    "LedgerAdapterSettings",
    "LedgerEntry",
    "LedgerHealthResult",
    "LedgerUnavailableError",
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "SqlLedgerAdapter",
    "canonical_payload",
    "chain_ref",
]
