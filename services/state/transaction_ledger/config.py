"""Pydantic settings for the Transaction Ledger activity mirror."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.config import ProTrackSettings, resolve_component_settings
from services.state.transaction_ledger.component import SERVICE_COMPONENT_ID


class TransactionLedgerSettings(BaseModel):
    """Retention settings for the activity feed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_entries: int = Field(default=10, gt=0)


def resolve_transaction_ledger_settings(
    settings: ProTrackSettings,
) -> TransactionLedgerSettings:
    """Resolve settings from ``service.transaction_ledger``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=TransactionLedgerSettings,
    )
