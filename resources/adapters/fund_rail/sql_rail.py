"""Fund-transfer rail persisted through the shared SQL substrate."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, MetaData, String, Table, insert, select
from sqlalchemy.exc import SQLAlchemyError

from packages.protrack_shared.ids import generate_ulid_str, ulid_primary_key_column
from packages.protrack_shared.logging import get_logger
from resources.adapters.fund_rail.adapter import (
    FundRailHealthResult,
    FundRailUnavailableError,
    FundTransfer,
    FundTransferRail,
)
from resources.substrates.sql import SqlSubstrate, transactional_session

_LOGGER = get_logger(__name__)

metadata = MetaData()

fund_transfers = Table(
    "fund_transfers",
    metadata,
    ulid_primary_key_column("tx_ref"),
    Column("idempotency_key", String(128), nullable=False, unique=True),
    Column("source", String(256), nullable=False),
    Column("destination", String(256), nullable=False),
    Column("amount", String(64), nullable=False),
    Column("executed_at", DateTime(timezone=True), nullable=False),
)


class SqlFundTransferRail(FundTransferRail):
    """Rail whose transfer log is the ``fund_transfers`` table."""

    def __init__(self, *, substrate: SqlSubstrate) -> None:
        self._substrate = substrate
        substrate.create_schema(metadata)

    async def transfer(
        self,
        *,
        source: str,
        destination: str,
        amount: Decimal,
        idempotency_key: str,
    ) -> str:
        try:
            with transactional_session(self._substrate.session_factory) as session:
                existing = session.execute(
                    select(fund_transfers.c.tx_ref).where(
                        fund_transfers.c.idempotency_key == idempotency_key
                    )
                ).scalar_one_or_none()
                if existing is not None:
                    return str(existing)
                tx_ref = generate_ulid_str()
                session.execute(
                    insert(fund_transfers).values(
                        tx_ref=tx_ref,
                        idempotency_key=idempotency_key,
                        source=source,
                        destination=destination,
                        amount=str(amount),
                        executed_at=datetime.now(UTC),
                    )
                )
        except SQLAlchemyError as exc:
            _LOGGER.warning("fund transfer failed", exc_info=exc)
            raise FundRailUnavailableError("fund rail unavailable") from exc
        return tx_ref

    def health(self) -> FundRailHealthResult:
        status = self._substrate.health()
        return FundRailHealthResult(adapter_ready=status.ready, detail=status.detail)

    def list_transfers(self) -> tuple[FundTransfer, ...]:
        """Return every executed transfer in execution order."""
        with transactional_session(self._substrate.session_factory) as session:
            rows = session.execute(
                select(fund_transfers).order_by(
                    fund_transfers.c.executed_at, fund_transfers.c.tx_ref
                )
            ).all()
        return tuple(
            FundTransfer(
                tx_ref=row.tx_ref,
                idempotency_key=row.idempotency_key,
                source=row.source,
                destination=row.destination,
                amount=Decimal(row.amount),
                executed_at=row.executed_at,
            )
            for row in rows
        )
