"""Concrete Escrow Engine implementation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from packages.protrack_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    child_meta,
    failure,
    success,
)
from packages.protrack_shared.errors import (
    ErrorCategory,
    codes,
    conflict_error,
    dependency_error,
    ledger_unavailable_error,
    stale_actor_error,
    unknown_escrow_error,
    validation_error,
)
from packages.protrack_shared.ids import generate_ulid_str
from packages.protrack_shared.locks import KeyedLocks
from packages.protrack_shared.logging import get_logger, public_api_instrumented
from packages.protrack_shared.time_utils import Clock, utc_now
from packages.protrack_shared.validation import validate_request
from resources.adapters.fund_rail import FundTransferRail
from resources.adapters.signing import ActorCapability, SigningProvider
from services.action.escrow_engine.component import SERVICE_COMPONENT_ID
from services.action.escrow_engine.config import EscrowEngineSettings
from services.action.escrow_engine.domain import (
    EscrowAgreement,
    EscrowState,
    HealthStatus,
    Settlement,
    SettlementOutcome,
    deadline_verdict,
    split_amount,
)
from services.action.escrow_engine.interfaces import EscrowRepository
from services.action.escrow_engine.service import EscrowEngineService
from services.action.escrow_engine.validation import (
    CreateEscrowRequest,
    EscrowLookupRequest,
    ListDueRequest,
)
from services.action.sla_evaluator.domain import SlaConditions, SLAVerdict
from services.action.sla_evaluator.service import SlaEvaluatorService
from services.state.oracle_ingest.service import OracleIngestService
from services.state.provenance_store import SHIPPED, ProvenanceRecord
from services.state.provenance_store.service import ProvenanceStoreService
from services.state.transaction_ledger import (
    ActivityKind,
    TransactionLedgerService,
    mirror_activity,
)

_LOGGER = get_logger(__name__)


class DefaultEscrowEngineService(EscrowEngineService):
    """Escrow engine holding funds in one rail account until settlement.

    Settlement is at-most-once: a per-escrow lock serializes callers in this
    process and the repository's compare-and-set on ``OPEN`` settles races
    between processes. Transfers use deterministic idempotency keys so a
    retried payout never pays twice.
    """

    def __init__(
        self,
        *,
        settings: EscrowEngineSettings,
        repository: EscrowRepository,
        rail: FundTransferRail,
        signing: SigningProvider,
        provenance: ProvenanceStoreService,
        oracle: OracleIngestService,
        evaluator: SlaEvaluatorService,
        activity: TransactionLedgerService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._rail = rail
        self._signing = signing
        self._provenance = provenance
        self._oracle = oracle
        self._evaluator = evaluator
        self._activity = activity
        self._clock = clock
        self._locks = KeyedLocks()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("unit_id",),
    )
    async def create(
        self,
        *,
        meta: EnvelopeMeta,
        unit_id: str,
        payer: ActorCapability,
        payee: str,
        amount: Decimal,
        conditions: SlaConditions,
        expected_delivery_by: datetime,
        shipment_id: str | None = None,
        device_ids: Sequence[str] = (),
    ) -> Envelope[EscrowAgreement]:
        request, errors = validate_request(
            meta=meta,
            model=CreateEscrowRequest,
            payload={
                "unit_id": unit_id,
                "payer": payer,
                "payee": payee,
                "amount": amount,
                "conditions": conditions,
                "expected_delivery_by": expected_delivery_by,
                "shipment_id": shipment_id,
                "device_ids": tuple(device_ids),
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        if not self._signing.authenticate(request.payer):
            return failure(
                meta=meta,
                errors=[
                    stale_actor_error(
                        "payer capability was not issued by the signing provider",
                        actor=request.payer.actor,
                    )
                ],
            )
        now = self._clock()
        if request.expected_delivery_by <= now:
            return failure(
                meta=meta,
                errors=[
                    validation_error(
                        "expected_delivery_by must be in the future",
                        code=codes.INVALID_ARGUMENT,
                    )
                ],
            )

        record = self._provenance.get_record(
            meta=_downstream(meta), unit_id=request.unit_id
        )
        if not record.ok:
            return failure(meta=meta, errors=record.errors)

        escrow_id = generate_ulid_str()
        try:
            deposit_ref = await self._rail.transfer(
                source=request.payer.actor,
                destination=self._settings.escrow_account,
                amount=request.amount,
                idempotency_key=f"{escrow_id}:deposit",
            )
        except Exception as exc:  # noqa: BLE001
            return _rail_failure(meta=meta, operation="create_escrow", exc=exc)

        escrow = EscrowAgreement(
            escrow_id=escrow_id,
            unit_id=request.unit_id,
            payer=request.payer.actor,
            payee=request.payee,
            amount=request.amount,
            conditions=request.conditions,
            created_at=now,
            expected_delivery_by=request.expected_delivery_by,
            shipment_id=request.shipment_id or request.unit_id,
            device_ids=request.device_ids,
            deposit_ref=deposit_ref,
        )
        try:
            self._repository.insert(escrow=escrow)
        except Exception as exc:  # noqa: BLE001
            await self._refund_deposit(escrow=escrow)
            return self._dependency_failure(meta=meta, operation="create_escrow", exc=exc)

        mirror_activity(
            self._activity,
            meta=meta,
            kind=ActivityKind.ESCROW,
            description=(
                f"Escrow of {escrow.amount} locked by {escrow.payer} "
                f"for {escrow.payee} on unit {escrow.unit_id}"
            ),
            reference=escrow.escrow_id,
            proof_ref=deposit_ref,
        )
        return success(meta=meta, payload=escrow)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("escrow_id",),
    )
    async def evaluate_and_settle(
        self, *, meta: EnvelopeMeta, escrow_id: str
    ) -> Envelope[SettlementOutcome]:
        """Settle one escrow, or replay its cached outcome if already settled.

        The outcome is decided once and stored as the escrow's payout plan
        before any funds move. Every failure leaves the escrow ``OPEN``; a
        retry replays the stored plan instead of re-evaluating, so an
        interrupted payout always finishes with the amounts first decided.
        """
        request, errors = validate_request(
            meta=meta, model=EscrowLookupRequest, payload={"escrow_id": escrow_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        async with self._locks.hold(request.escrow_id):
            try:
                escrow = self._repository.get(escrow_id=request.escrow_id)
            except Exception as exc:  # noqa: BLE001
                return self._dependency_failure(
                    meta=meta, operation="evaluate_and_settle", exc=exc
                )
            if escrow is None:
                return failure(meta=meta, errors=[unknown_escrow_error(request.escrow_id)])
            if escrow.state.terminal:
                return _not_open(meta=meta, escrow=escrow)

            if escrow.payout_plan is not None:
                _LOGGER.info(
                    "resuming interrupted payout: escrow_id=%s state=%s",
                    escrow.escrow_id,
                    escrow.payout_plan.state.value,
                )
                plan = escrow.payout_plan
            else:
                decided = self._decide(meta=meta, escrow=escrow)
                if isinstance(decided, Envelope):
                    return decided
                plan = decided

            return await self._pay_out(meta=meta, escrow=escrow, plan=plan)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("escrow_id",),
    )
    def status(self, *, meta: EnvelopeMeta, escrow_id: str) -> Envelope[EscrowAgreement]:
        request, errors = validate_request(
            meta=meta, model=EscrowLookupRequest, payload={"escrow_id": escrow_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        try:
            escrow = self._repository.get(escrow_id=request.escrow_id)
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="status", exc=exc)
        if escrow is None:
            return failure(meta=meta, errors=[unknown_escrow_error(request.escrow_id)])
        return success(meta=meta, payload=escrow)

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def list_due(
        self, *, meta: EnvelopeMeta, horizon: datetime
    ) -> Envelope[tuple[EscrowAgreement, ...]]:
        request, errors = validate_request(
            meta=meta, model=ListDueRequest, payload={"horizon": horizon}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        try:
            due = self._repository.list_open(due_before=request.horizon)
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="list_due", exc=exc)
        return success(meta=meta, payload=due)

    def verdict_history(self, unit_id: str) -> tuple[SLAVerdict, ...]:
        return tuple(
            escrow.settlement.verdict
            for escrow in self._repository.list_for_unit(unit_id=unit_id)
            if escrow.settlement is not None
        )

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        rail = self._rail.health()
        try:
            open_escrows = len(self._repository.list_open())
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="health", exc=exc)
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=True,
                rail_ready=rail.adapter_ready,
                open_escrows=open_escrows,
                detail=rail.detail,
            ),
        )

    def _decide(
        self, *, meta: EnvelopeMeta, escrow: EscrowAgreement
    ) -> Settlement | Envelope[SettlementOutcome]:
        """Evaluate an ``OPEN`` escrow and store the resulting payout plan."""
        now = self._clock()
        if now > escrow.expected_delivery_by:
            state = EscrowState.EXPIRED
            verdict = deadline_verdict(escrow.expected_delivery_by, escrow.amount)
        else:
            evaluated = self._evaluate(meta=meta, escrow=escrow, now=now)
            if isinstance(evaluated, Envelope):
                return evaluated
            verdict = evaluated
            state = EscrowState.RELEASED if verdict.compliant else EscrowState.PENALIZED

        payee_amount, payer_refund = split_amount(escrow.amount, verdict)
        plan = Settlement(
            state=state,
            verdict=verdict,
            payee_amount=payee_amount,
            payer_refund=payer_refund,
            transfer_refs=(),
            settled_at=now,
        )
        try:
            planned = self._repository.record_plan(escrow_id=escrow.escrow_id, plan=plan)
            current = None if planned else self._repository.get(escrow_id=escrow.escrow_id)
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta, operation="evaluate_and_settle", exc=exc
            )
        if planned:
            _LOGGER.info(
                "settlement planned: escrow_id=%s state=%s payee_amount=%s payer_refund=%s",
                escrow.escrow_id,
                state.value,
                payee_amount,
                payer_refund,
            )
            return plan

        _LOGGER.info("escrow decided concurrently elsewhere: escrow_id=%s", escrow.escrow_id)
        if current is None:
            return failure(meta=meta, errors=[unknown_escrow_error(escrow.escrow_id)])
        if current.state.terminal:
            return _not_open(meta=meta, escrow=current)
        assert current.payout_plan is not None
        return current.payout_plan

    async def _pay_out(
        self, *, meta: EnvelopeMeta, escrow: EscrowAgreement, plan: Settlement
    ) -> Envelope[SettlementOutcome]:
        """Execute a stored plan's transfers, then mark the escrow terminal."""
        transfers = (
            (escrow.payee, plan.payee_amount, f"{escrow.escrow_id}:payee"),
            (escrow.payer, plan.payer_refund, f"{escrow.escrow_id}:payer"),
        )
        transfer_refs: list[str] = []
        try:
            for destination, amount, key in transfers:
                if amount <= 0:
                    continue
                transfer_refs.append(
                    await self._rail.transfer(
                        source=self._settings.escrow_account,
                        destination=destination,
                        amount=amount,
                        idempotency_key=key,
                    )
                )
        except Exception as exc:  # noqa: BLE001
            return _rail_failure(meta=meta, operation="evaluate_and_settle", exc=exc)

        settlement = plan.model_copy(update={"transfer_refs": tuple(transfer_refs)})
        try:
            settled = self._repository.settle(
                escrow_id=escrow.escrow_id, settlement=settlement
            )
            current = None if settled else self._repository.get(escrow_id=escrow.escrow_id)
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta, operation="evaluate_and_settle", exc=exc
            )
        if not settled:
            _LOGGER.info(
                "escrow settled concurrently elsewhere: escrow_id=%s", escrow.escrow_id
            )
            if current is None:
                return failure(meta=meta, errors=[unknown_escrow_error(escrow.escrow_id)])
            return _not_open(meta=meta, escrow=current)

        _LOGGER.info(
            "escrow settled: escrow_id=%s state=%s payee_amount=%s payer_refund=%s",
            escrow.escrow_id,
            settlement.state.value,
            settlement.payee_amount,
            settlement.payer_refund,
        )
        self._mirror_settlement(meta=meta, escrow=escrow, settlement=settlement)
        return success(
            meta=meta,
            payload=SettlementOutcome.from_settlement(
                escrow.escrow_id, settlement, replayed=False
            ),
        )

    async def _refund_deposit(self, *, escrow: EscrowAgreement) -> None:
        """Return a deposit whose agreement could not be stored."""
        try:
            refund_ref = await self._rail.transfer(
                source=self._settings.escrow_account,
                destination=escrow.payer,
                amount=escrow.amount,
                idempotency_key=f"{escrow.escrow_id}:deposit-refund",
            )
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error(
                "escrow deposit stranded; agreement not stored and refund failed: "
                "escrow_id=%s deposit_ref=%s payer=%s amount=%s",
                escrow.escrow_id,
                escrow.deposit_ref,
                escrow.payer,
                escrow.amount,
                exc_info=exc,
            )
            return
        _LOGGER.warning(
            "escrow deposit refunded after storage failure: "
            "escrow_id=%s deposit_ref=%s refund_ref=%s",
            escrow.escrow_id,
            escrow.deposit_ref,
            refund_ref,
        )

    def _evaluate(
        self, *, meta: EnvelopeMeta, escrow: EscrowAgreement, now: datetime
    ) -> SLAVerdict | Envelope[SettlementOutcome]:
        """Fetch the monitoring window and evaluate it; failures come back as envelopes."""
        window = self._oracle.verified_window(
            meta=_downstream(meta), device_ids=escrow.device_ids, shipment_id=escrow.shipment_id
        )
        if not window.ok:
            return _collaborator_failure(meta=meta, result=window, resource="oracle")
        record = self._provenance.get_record(meta=_downstream(meta), unit_id=escrow.unit_id)
        if not record.ok:
            return _collaborator_failure(meta=meta, result=record, resource="provenance")
        assert record.value is not None

        verdict = self._evaluator.evaluate(
            meta=_downstream(meta),
            conditions=escrow.conditions,
            samples=window.value or (),
            now=now,
            started_at=_started_at(record.value),
        )
        if not verdict.ok:
            return failure(meta=meta, errors=verdict.errors)
        assert verdict.value is not None
        return verdict.value

    def _mirror_settlement(
        self, *, meta: EnvelopeMeta, escrow: EscrowAgreement, settlement: Settlement
    ) -> None:
        proof_ref = settlement.transfer_refs[0] if settlement.transfer_refs else None
        mirror_activity(
            self._activity,
            meta=meta,
            kind=ActivityKind.ESCROW,
            description=(
                f"Escrow {settlement.state.value.lower()}: {settlement.payee_amount} "
                f"to {escrow.payee}, {settlement.payer_refund} refunded to {escrow.payer}"
            ),
            reference=escrow.escrow_id,
            proof_ref=proof_ref,
        )
        if not settlement.verdict.compliant:
            mirror_activity(
                self._activity,
                meta=meta,
                kind=ActivityKind.SLA_VIOLATION,
                description="; ".join(settlement.verdict.violations),
                reference=escrow.escrow_id,
            )

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[object]:
        """Map repository exceptions into dependency-category envelope errors."""
        _LOGGER.warning(
            "Escrow operation failed due to dependency error: operation=%s exception_type=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return failure(
            meta=meta,
            errors=[
                dependency_error(
                    f"{operation} failed",
                    code=codes.DEPENDENCY_UNAVAILABLE,
                    metadata={
                        "resource": "escrow_repository",
                        "exception_type": type(exc).__name__,
                    },
                )
            ],
        )


def _downstream(meta: EnvelopeMeta) -> EnvelopeMeta:
    return child_meta(meta, source=str(SERVICE_COMPONENT_ID))


def _started_at(record: ProvenanceRecord) -> datetime:
    """First ``Shipped`` event time, else the unit's creation time."""
    for event in record.history:
        if event.kind == SHIPPED:
            return event.occurred_at
    return record.created_at


def _not_open(*, meta: EnvelopeMeta, escrow: EscrowAgreement) -> Envelope[SettlementOutcome]:
    assert escrow.settlement is not None
    return failure(
        meta=meta,
        errors=[
            conflict_error(
                f"escrow is not open: {escrow.escrow_id} is {escrow.state.value}",
                code=codes.NOT_OPEN,
                metadata={"escrow_id": escrow.escrow_id, "state": escrow.state.value},
            )
        ],
        payload=SettlementOutcome.from_settlement(
            escrow.escrow_id, escrow.settlement, replayed=True
        ),
    )


def _collaborator_failure(
    *, meta: EnvelopeMeta, result: Envelope[object], resource: str
) -> Envelope[SettlementOutcome]:
    """Forward a collaborator's errors, folding transient ones into ``LEDGER_UNAVAILABLE``."""
    if any(
        error.retryable or error.category == ErrorCategory.DEPENDENCY
        for error in result.errors
    ):
        _LOGGER.warning(
            "escrow left open after collaborator failure: resource=%s errors=%s",
            resource,
            result.error_codes,
        )
        return failure(
            meta=meta,
            errors=[ledger_unavailable_error("evaluate_and_settle", resource=resource)],
        )
    return failure(meta=meta, errors=result.errors)


def _rail_failure(
    *, meta: EnvelopeMeta, operation: str, exc: Exception
) -> Envelope[object]:
    _LOGGER.warning(
        "Fund rail call failed: operation=%s exception_type=%s",
        operation,
        type(exc).__name__,
        exc_info=exc,
    )
    return failure(
        meta=meta,
        errors=[ledger_unavailable_error(operation, exc=exc, resource="fund_rail")],
    )
