"""Transaction Ledger native package exports."""

from services.state.transaction_ledger.component import MANIFEST
from services.state.transaction_ledger.config import TransactionLedgerSettings
from services.state.transaction_ledger.domain import (
    ActivityEntry,
    ActivityKind,
    ActivityStatus,
)
from services.state.transaction_ledger.implementation import (
    InMemoryTransactionLedgerService,
)
from services.state.transaction_ledger.service import (
    TransactionLedgerService,
    build_transaction_ledger_service,
    mirror_activity,
)

__all__ = [
    "MANIFEST",
    "ActivityEntry",
    "ActivityKind",
    "ActivityStatus",
    "InMemoryTransactionLedgerService",
    "TransactionLedgerService",
    "TransactionLedgerSettings",
    "build_transaction_ledger_service",
    "mirror_activity",
]
