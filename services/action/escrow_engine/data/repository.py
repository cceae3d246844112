"""Repositories for Escrow Engine agreements."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from threading import Lock
from typing import Any

from sqlalchemy import insert, select, update

from packages.protrack_shared.time_utils import ensure_utc
from resources.substrates.sql import SqlSubstrate, transactional_session
from services.action.escrow_engine.domain import EscrowAgreement, EscrowState, Settlement
from services.action.escrow_engine.interfaces import EscrowRepository
from services.action.sla_evaluator.domain import SlaConditions

from .schema import escrows, metadata


class InMemoryEscrowRepository(EscrowRepository):
    """Process-local repository used by tests and the memory backend."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._escrows: dict[str, EscrowAgreement] = {}

    def insert(self, *, escrow: EscrowAgreement) -> None:
        with self._lock:
            if escrow.escrow_id in self._escrows:
                raise KeyError(escrow.escrow_id)
            self._escrows[escrow.escrow_id] = escrow

    def get(self, *, escrow_id: str) -> EscrowAgreement | None:
        with self._lock:
            return self._escrows.get(escrow_id)

    def record_plan(self, *, escrow_id: str, plan: Settlement) -> bool:
        with self._lock:
            current = self._escrows.get(escrow_id)
            if (
                current is None
                or current.state != EscrowState.OPEN
                or current.payout_plan is not None
            ):
                return False
            self._escrows[escrow_id] = current.model_copy(update={"payout_plan": plan})
            return True

    def settle(self, *, escrow_id: str, settlement: Settlement) -> bool:
        with self._lock:
            current = self._escrows.get(escrow_id)
            if current is None or current.state != EscrowState.OPEN:
                return False
            self._escrows[escrow_id] = current.model_copy(
                update={"state": settlement.state, "settlement": settlement}
            )
            return True

    def list_open(self, *, due_before: datetime | None = None) -> tuple[EscrowAgreement, ...]:
        with self._lock:
            candidates = list(self._escrows.values())
        return tuple(
            escrow
            for escrow in sorted(
                candidates, key=lambda item: (item.expected_delivery_by, item.escrow_id)
            )
            if escrow.state == EscrowState.OPEN
            and (due_before is None or escrow.expected_delivery_by <= due_before)
        )

    def list_for_unit(self, *, unit_id: str) -> tuple[EscrowAgreement, ...]:
        with self._lock:
            matches = [item for item in self._escrows.values() if item.unit_id == unit_id]
        return tuple(sorted(matches, key=lambda item: (item.created_at, item.escrow_id)))


class SqlEscrowRepository(EscrowRepository):
    """SQL repository over the ``escrows`` table.

    ``record_plan`` and ``settle`` are compare-and-set updates on
    ``state = 'OPEN'`` so that two processes racing on one escrow cannot both
    decide or settle it.
    """

    def __init__(self, substrate: SqlSubstrate) -> None:
        self._sessions = substrate.session_factory
        substrate.create_schema(metadata)

    def insert(self, *, escrow: EscrowAgreement) -> None:
        with transactional_session(self._sessions) as session:
            session.execute(
                insert(escrows).values(
                    escrow_id=escrow.escrow_id,
                    unit_id=escrow.unit_id,
                    payer=escrow.payer,
                    payee=escrow.payee,
                    amount=str(escrow.amount),
                    conditions=escrow.conditions.model_dump(mode="json"),
                    created_at=escrow.created_at,
                    expected_delivery_by=escrow.expected_delivery_by,
                    shipment_id=escrow.shipment_id,
                    device_ids=list(escrow.device_ids),
                    deposit_ref=escrow.deposit_ref,
                    state=escrow.state.value,
                    settlement=None,
                )
            )

    def get(self, *, escrow_id: str) -> EscrowAgreement | None:
        with transactional_session(self._sessions) as session:
            row = (
                session.execute(select(escrows).where(escrows.c.escrow_id == escrow_id))
                .mappings()
                .one_or_none()
            )
        return None if row is None else _to_escrow(row)

    def record_plan(self, *, escrow_id: str, plan: Settlement) -> bool:
        with transactional_session(self._sessions) as session:
            result = session.execute(
                update(escrows)
                .where(
                    escrows.c.escrow_id == escrow_id,
                    escrows.c.state == EscrowState.OPEN.value,
                    escrows.c.payout_plan.is_(None),
                )
                .values(payout_plan=plan.model_dump(mode="json"))
            )
        return result.rowcount == 1

    def settle(self, *, escrow_id: str, settlement: Settlement) -> bool:
        with transactional_session(self._sessions) as session:
            result = session.execute(
                update(escrows)
                .where(
                    escrows.c.escrow_id == escrow_id,
                    escrows.c.state == EscrowState.OPEN.value,
                )
                .values(
                    state=settlement.state.value,
                    settlement=settlement.model_dump(mode="json"),
                )
            )
        return result.rowcount == 1

    def list_open(self, *, due_before: datetime | None = None) -> tuple[EscrowAgreement, ...]:
        stmt = select(escrows).where(escrows.c.state == EscrowState.OPEN.value)
        if due_before is not None:
            stmt = stmt.where(escrows.c.expected_delivery_by <= due_before)
        stmt = stmt.order_by(escrows.c.expected_delivery_by, escrows.c.escrow_id)
        with transactional_session(self._sessions) as session:
            rows = session.execute(stmt).mappings().all()
        return tuple(_to_escrow(row) for row in rows)

    def list_for_unit(self, *, unit_id: str) -> tuple[EscrowAgreement, ...]:
        stmt = (
            select(escrows)
            .where(escrows.c.unit_id == unit_id)
            .order_by(escrows.c.created_at, escrows.c.escrow_id)
        )
        with transactional_session(self._sessions) as session:
            rows = session.execute(stmt).mappings().all()
        return tuple(_to_escrow(row) for row in rows)


def _to_escrow(row: Any) -> EscrowAgreement:
    """Map one SQL row to an escrow agreement."""
    plan = row["payout_plan"]
    settlement = row["settlement"]
    return EscrowAgreement(
        escrow_id=str(row["escrow_id"]),
        unit_id=str(row["unit_id"]),
        payer=str(row["payer"]),
        payee=str(row["payee"]),
        amount=Decimal(row["amount"]),
        conditions=SlaConditions.model_validate(row["conditions"]),
        created_at=ensure_utc(row["created_at"]),
        expected_delivery_by=ensure_utc(row["expected_delivery_by"]),
        shipment_id=str(row["shipment_id"]),
        device_ids=tuple(row["device_ids"]),
        deposit_ref=str(row["deposit_ref"]),
        state=EscrowState(row["state"]),
        payout_plan=None if plan is None else Settlement.model_validate(plan),
        settlement=None if settlement is None else Settlement.model_validate(settlement),
    )
