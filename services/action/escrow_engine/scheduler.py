"""Periodic settlement sweep over due escrows."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import timedelta

from packages.protrack_shared.envelope import EnvelopeKind, EnvelopeMeta, child_meta, new_meta
from packages.protrack_shared.errors import codes
from packages.protrack_shared.logging import get_logger
from packages.protrack_shared.time_utils import Clock, utc_now
from services.action.escrow_engine.config import SettlementSchedulerSettings
from services.action.escrow_engine.service import EscrowEngineService
from services.state.oracle_ingest.service import OracleIngestService

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class SchedulerTick:
    """Summary of one sweep."""

    expired_samples: int
    settled: tuple[str, ...]
    skipped: tuple[str, ...]
    failed: tuple[str, ...]


class SettlementScheduler:
    """Expire overdue oracle samples, then settle every escrow coming due.

    An escrow is due when its ``expected_delivery_by`` falls within
    ``lookahead_seconds`` of now. A failure on one escrow is logged and the
    sweep moves on; the escrow stays ``OPEN`` for the next tick, which resumes
    any payout plan it already holds.
    """

    def __init__(
        self,
        *,
        engine: EscrowEngineService,
        oracle: OracleIngestService,
        settings: SettlementSchedulerSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._engine = engine
        self._oracle = oracle
        self._settings = settings
        self._clock = clock

    async def run_once(self) -> SchedulerTick:
        """Run one sweep and return what it did."""
        meta = _scheduler_meta()
        expired = self._oracle.expire_pending(meta=meta)
        if not expired.ok:
            _LOGGER.warning("sample expiry sweep failed: errors=%s", expired.error_codes)

        horizon = self._clock() + timedelta(seconds=self._settings.lookahead_seconds)
        due = self._engine.list_due(meta=meta, horizon=horizon)
        if not due.ok:
            _LOGGER.warning("due escrow listing failed: errors=%s", due.error_codes)
            return SchedulerTick(
                expired_samples=expired.value or 0, settled=(), skipped=(), failed=()
            )

        settled: list[str] = []
        skipped: list[str] = []
        failed: list[str] = []
        for escrow in due.value or ():
            try:
                outcome = await self._engine.evaluate_and_settle(
                    meta=child_meta(meta, source="settlement_scheduler"),
                    escrow_id=escrow.escrow_id,
                )
            except Exception:  # noqa: BLE001
                _LOGGER.exception(
                    "settlement raised unexpectedly: escrow_id=%s", escrow.escrow_id
                )
                failed.append(escrow.escrow_id)
                continue
            if outcome.ok:
                settled.append(escrow.escrow_id)
            elif codes.NOT_OPEN in outcome.error_codes:
                skipped.append(escrow.escrow_id)
            else:
                _LOGGER.warning(
                    "settlement deferred: escrow_id=%s errors=%s",
                    escrow.escrow_id,
                    outcome.error_codes,
                )
                failed.append(escrow.escrow_id)

        tick = SchedulerTick(
            expired_samples=expired.value or 0,
            settled=tuple(settled),
            skipped=tuple(skipped),
            failed=tuple(failed),
        )
        if tick.settled or tick.failed or tick.expired_samples:
            _LOGGER.info(
                "settlement sweep: expired_samples=%d settled=%d failed=%d",
                tick.expired_samples,
                len(tick.settled),
                len(tick.failed),
            )
        return tick

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Sweep every ``interval_seconds`` until ``stop`` is set."""
        _LOGGER.info(
            "settlement scheduler started: interval_s=%.1f lookahead_s=%.1f",
            self._settings.interval_seconds,
            self._settings.lookahead_seconds,
        )
        while not stop.is_set():
            await self.run_once()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), timeout=self._settings.interval_seconds)
        _LOGGER.info("settlement scheduler stopped")


def _scheduler_meta() -> EnvelopeMeta:
    return new_meta(
        kind=EnvelopeKind.COMMAND, source="settlement_scheduler", principal="system"
    )
