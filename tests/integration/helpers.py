"""Runtime harness shared by end-to-end tests."""

from __future__ import annotations

import asyncio
import itertools
from datetime import timedelta
from decimal import Decimal

from packages.protrack_core import ProTrackRuntime
from packages.protrack_shared.config import load_settings
from packages.protrack_shared.time_utils import to_unix_seconds, utc_now
from resources.adapters.fund_rail import InMemoryFundTransferRail
from resources.adapters.ledger import InMemoryLedgerAdapter
from services.action.sla_evaluator import SlaConditions
from services.state.oracle_ingest import SensorSample, SensorType
from services.state.provenance_store import EventDraft, UnitDescriptor

MANUFACTURER = "acme"
CARRIER = "carrier"
BUYER = "buyer"
DEVICE = "probe-1"


class Harness:
    """Runtime wired to inspectable in-memory ledger and fund rail."""

    def __init__(self) -> None:
        self.ledger = InMemoryLedgerAdapter()
        self.rail = InMemoryFundTransferRail()
        self._ages = itertools.count(1)
        settings = load_settings(
            components={
                "service": {
                    "oracle_ingest": {"verification_timeout_seconds": 0.2},
                },
            }
        )
        self.runtime = ProTrackRuntime.build(
            settings,
            overrides={"adapter_ledger": self.ledger, "adapter_fund_rail": self.rail},
        )

    def capability(self, actor: str):
        return self.runtime.issue_capability(actor)

    def mint(self, **fields) -> str:
        values = {
            "name": "Vaccine crate",
            "sku": "VC-1",
            "batch_id": "B-1",
            "manufacturer": MANUFACTURER,
            "location": "Plant",
        }
        values.update(fields)
        minted = asyncio.run(
            self.runtime.mint(
                descriptor=UnitDescriptor(**values),
                idempotency_key=f"{values['sku']}:{values['batch_id']}",
            )
        )
        assert minted.ok, minted.errors
        return minted.value.unit_id

    def append(self, unit_id: str, actor: str, **event):
        return asyncio.run(
            self.runtime.append_event(
                unit_id=unit_id,
                event=EventDraft(**event),
                capability=self.capability(actor),
            )
        )

    def ship(self, unit_id: str) -> None:
        shipped = self.append(
            unit_id,
            MANUFACTURER,
            kind="Shipped",
            location="Dock 4",
            payload={"custodian": CARRIER},
        )
        assert shipped.ok, shipped.errors

    def escrow(self, unit_id: str, *, amount: str = "100", **conditions) -> str:
        created = asyncio.run(
            self.runtime.create_escrow(
                unit_id=unit_id,
                payer=self.capability(BUYER),
                payee=MANUFACTURER,
                amount=Decimal(amount),
                conditions=SlaConditions(**conditions),
                expected_delivery_by=utc_now() + timedelta(days=1),
                device_ids=(DEVICE,),
            )
        )
        assert created.ok, created.errors
        return created.value.escrow_id

    def reading(self, value: float, *, offset_seconds: int | None = None, verify: bool = True):
        """Submit one temperature reading; each call gets a distinct timestamp."""
        if offset_seconds is None:
            offset_seconds = -next(self._ages)
        receipt = self.runtime.submit_sample(
            SensorSample(
                device_id=DEVICE,
                sensor_type=SensorType.TEMPERATURE,
                value=value,
                unit="C",
                observed_at=to_unix_seconds(utc_now()) + offset_seconds,
            )
        )
        if not verify or not receipt.ok:
            return receipt
        return asyncio.run(self.runtime.verify_sample(receipt.value.sample_id))

    def settle(self, escrow_id: str):
        return asyncio.run(self.runtime.evaluate_and_settle(escrow_id))

