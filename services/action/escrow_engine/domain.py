"""Domain contracts for escrow agreements and their settlement."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict

from services.action.sla_evaluator.domain import SlaConditions, SLAVerdict


class EscrowState(str, Enum):
    """Escrow lifecycle; every state but ``OPEN`` is terminal."""

    OPEN = "OPEN"
    RELEASED = "RELEASED"
    PENALIZED = "PENALIZED"
    EXPIRED = "EXPIRED"

    @property
    def terminal(self) -> bool:
        return self is not EscrowState.OPEN


class Settlement(BaseModel):
    """The one and only settlement.

    Decided once and stored as the escrow's ``payout_plan`` with no
    ``transfer_refs`` before any funds move; ``state`` is the outcome the
    plan leads to.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    state: EscrowState
    verdict: SLAVerdict
    payee_amount: Decimal
    payer_refund: Decimal
    transfer_refs: tuple[str, ...]
    settled_at: datetime


class EscrowAgreement(BaseModel):
    """Funds held against a unit's delivery conditions.

    ``payout_plan`` is the decided settlement of an escrow whose payout has
    started but not finished; the escrow stays ``OPEN`` until it completes.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    escrow_id: str
    unit_id: str
    payer: str
    payee: str
    amount: Decimal
    conditions: SlaConditions
    created_at: datetime
    expected_delivery_by: datetime
    shipment_id: str
    device_ids: tuple[str, ...]
    deposit_ref: str
    state: EscrowState = EscrowState.OPEN
    payout_plan: Settlement | None = None
    settlement: Settlement | None = None


class SettlementOutcome(BaseModel):
    """Result of ``evaluate_and_settle``; ``replayed`` marks a cached answer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    escrow_id: str
    state: EscrowState
    verdict: SLAVerdict
    payee_amount: Decimal
    payer_refund: Decimal
    transfer_refs: tuple[str, ...]
    replayed: bool = False

    @classmethod
    def from_settlement(
        cls, escrow_id: str, settlement: Settlement, *, replayed: bool
    ) -> "SettlementOutcome":
        return cls(
            escrow_id=escrow_id,
            state=settlement.state,
            verdict=settlement.verdict,
            payee_amount=settlement.payee_amount,
            payer_refund=settlement.payer_refund,
            transfer_refs=settlement.transfer_refs,
            replayed=replayed,
        )


class HealthStatus(BaseModel):
    """Escrow Engine and fund rail readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    rail_ready: bool
    open_escrows: int
    detail: str


def split_amount(amount: Decimal, verdict: SLAVerdict) -> tuple[Decimal, Decimal]:
    """Return ``(payee_amount, payer_refund)`` for a verdict.

    The payee's share is floored at zero; the payer gets the remainder.
    """
    if verdict.compliant:
        return amount, Decimal("0")
    penalty = verdict.penalty_amount or Decimal("0")
    payee_amount = max(Decimal("0"), amount - penalty)
    return payee_amount, amount - payee_amount


def deadline_verdict(expected_delivery_by: datetime, amount: Decimal) -> SLAVerdict:
    """Verdict for an escrow whose delivery deadline passed unsettled."""
    return SLAVerdict(
        compliant=False,
        violations=(
            f"Delivery deadline missed: expected by {expected_delivery_by.isoformat()}",
        ),
        penalty_amount=amount,
    )
