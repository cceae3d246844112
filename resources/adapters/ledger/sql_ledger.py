"""Hash-chained ledger persisted through the shared SQL substrate."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Mapping

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    insert,
    select,
)
from sqlalchemy.exc import SQLAlchemyError

from packages.protrack_shared.logging import get_logger
from resources.adapters.ledger.adapter import (
    GENESIS_REF,
    LedgerAdapter,
    LedgerHealthResult,
    LedgerUnavailableError,
    canonical_payload,
    chain_ref,
)
from resources.substrates.sql import SqlSubstrate, transactional_session

_LOGGER = get_logger(__name__)

metadata = MetaData()

ledger_entries = Table(
    "ledger_entries",
    metadata,
    Column("sequence", Integer, primary_key=True, autoincrement=False),
    Column("proof_ref", String(64), nullable=False, unique=True),
    Column("previous_ref", String(64), nullable=False),
    Column("body", Text, nullable=False),
    Column("committed_at", DateTime(timezone=True), nullable=False),
)


class SqlLedgerAdapter(LedgerAdapter):
    """Ledger whose chain lives in the ``ledger_entries`` table."""

    def __init__(self, *, substrate: SqlSubstrate) -> None:
        self._substrate = substrate
        substrate.create_schema(metadata)

    async def commit(self, *, payload: Mapping[str, object]) -> str:
        body = canonical_payload(payload)
        try:
            with transactional_session(self._substrate.session_factory) as session:
                last = session.execute(
                    select(ledger_entries.c.sequence, ledger_entries.c.proof_ref)
                    .order_by(ledger_entries.c.sequence.desc())
                    .limit(1)
                ).first()
                sequence = 1 if last is None else int(last.sequence) + 1
                previous = GENESIS_REF if last is None else str(last.proof_ref)
                proof_ref = chain_ref(previous, body)
                session.execute(
                    insert(ledger_entries).values(
                        sequence=sequence,
                        proof_ref=proof_ref,
                        previous_ref=previous,
                        body=body,
                        committed_at=datetime.now(UTC),
                    )
                )
        except SQLAlchemyError as exc:
            _LOGGER.warning("ledger commit failed", exc_info=exc)
            raise LedgerUnavailableError("ledger commit unavailable") from exc
        return proof_ref

    async def confirm(self, *, proof_ref: str) -> bool:
        try:
            with transactional_session(self._substrate.session_factory) as session:
                found = session.execute(
                    select(ledger_entries.c.sequence).where(
                        ledger_entries.c.proof_ref == proof_ref
                    )
                ).first()
        except SQLAlchemyError as exc:
            _LOGGER.warning("ledger confirm failed", exc_info=exc)
            raise LedgerUnavailableError("ledger confirm unavailable") from exc
        return found is not None

    def health(self) -> LedgerHealthResult:
        status = self._substrate.health()
        return LedgerHealthResult(adapter_ready=status.ready, detail=status.detail)

    def verify_chain(self) -> bool:
        """Recompute every stored link and report whether the chain is intact."""
        with transactional_session(self._substrate.session_factory) as session:
            rows = session.execute(
                select(
                    ledger_entries.c.proof_ref,
                    ledger_entries.c.previous_ref,
                    ledger_entries.c.body,
                ).order_by(ledger_entries.c.sequence)
            ).all()
        previous = GENESIS_REF
        for row in rows:
            if row.previous_ref != previous or chain_ref(previous, row.body) != row.proof_ref:
                return False
            previous = row.proof_ref
        return True
