"""Penalty policies mapping SLA violations to an amount withheld from the payee."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Callable

PenaltyPolicy = Callable[[Sequence[str]], Decimal]


def per_violation_penalty(*, unit: Decimal = Decimal("0.1")) -> PenaltyPolicy:
    """Charge a fixed ``unit`` per violation, independent of escrow amount."""
    if unit < 0:
        raise ValueError("penalty unit must be non-negative")

    def policy(violations: Sequence[str]) -> Decimal:
        return unit * len(violations)

    return policy


def capped_penalty(policy: PenaltyPolicy, *, cap: Decimal) -> PenaltyPolicy:
    """Wrap ``policy`` so it never charges more than ``cap``."""
    if cap < 0:
        raise ValueError("penalty cap must be non-negative")

    def capped(violations: Sequence[str]) -> Decimal:
        return min(policy(violations), cap)

    return capped


DEFAULT_PENALTY_POLICY: PenaltyPolicy = per_violation_penalty()
