"""Concrete OracleIngest implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import timedelta

from packages.protrack_shared.envelope import Envelope, EnvelopeMeta, failure, success
from packages.protrack_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    ledger_unavailable_error,
    not_found_error,
    sample_rejected_error,
)
from packages.protrack_shared.ids import generate_ulid_str
from packages.protrack_shared.locks import KeyedLocks
from packages.protrack_shared.logging import get_logger, public_api_instrumented
from packages.protrack_shared.time_utils import Clock, to_unix_seconds, utc_now
from packages.protrack_shared.validation import validate_request
from resources.adapters.ledger import LedgerAdapter
from services.state.oracle_ingest.component import SERVICE_COMPONENT_ID
from services.state.oracle_ingest.config import OracleIngestSettings
from services.state.oracle_ingest.domain import (
    HealthStatus,
    LocationSample,
    SampleRejection,
    SampleStatus,
    SensorSample,
    StoredSample,
    SubmitReceipt,
    VerificationOutcome,
    normalize_sample,
)
from services.state.oracle_ingest.interfaces import (
    DuplicateObservationError,
    SampleRepository,
)
from services.state.oracle_ingest.service import OracleIngestService
from services.state.oracle_ingest.validation import (
    ExpirePendingRequest,
    SampleLookupRequest,
    SubmitSampleRequest,
    VerifiedWindowRequest,
)
from services.state.transaction_ledger import (
    ActivityKind,
    ActivityStatus,
    TransactionLedgerService,
    mirror_activity,
)

_LOGGER = get_logger(__name__)


class DefaultOracleIngestService(OracleIngestService):
    """OracleIngest that admits samples locally and anchors them on verify.

    Verification is fail-closed: a sample whose confirmation is negative or
    does not arrive within its budget becomes ``FAILED`` and never leaves that
    state.
    """

    def __init__(
        self,
        *,
        settings: OracleIngestSettings,
        repository: SampleRepository,
        ledger: LedgerAdapter,
        activity: TransactionLedgerService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._ledger = ledger
        self._activity = activity
        self._clock = clock
        self._locks = KeyedLocks()

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def submit(
        self, *, meta: EnvelopeMeta, sample: SensorSample | LocationSample
    ) -> Envelope[SubmitReceipt]:
        request, errors = validate_request(
            meta=meta, model=SubmitSampleRequest, payload={"sample": sample}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        submitted = request.sample
        now = self._clock()
        try:
            normalized = normalize_sample(
                submitted,
                now_unix=to_unix_seconds(now),
                skew_tolerance_seconds=self._settings.clock_skew_tolerance_seconds,
            )
        except SampleRejection as exc:
            return _rejected(meta=meta, source_key=submitted.source_key, reason=str(exc))

        stored = StoredSample(
            sample_id=generate_ulid_str(),
            sample=normalized,
            status=SampleStatus.PENDING,
            submitted_at=now,
        )
        try:
            evicted = self._repository.insert(
                sample=stored, window_size=self._settings.window_size
            )
        except DuplicateObservationError:
            return _rejected(
                meta=meta,
                source_key=stored.source_key,
                reason=f"duplicate observation for {stored.source_key} at {stored.observed_at}",
            )
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="submit", exc=exc)

        if evicted:
            _LOGGER.info(
                "sample window trimmed: source_key=%s evicted=%d",
                stored.source_key,
                evicted,
            )
        mirror_activity(
            self._activity,
            meta=meta,
            kind=_activity_kind(normalized),
            description=_describe(normalized),
            reference=stored.sample_id,
            status=ActivityStatus.PENDING,
        )
        return success(
            meta=meta, payload=SubmitReceipt(accepted=True, sample_id=stored.sample_id)
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("sample_id",),
    )
    async def verify(
        self, *, meta: EnvelopeMeta, sample_id: str
    ) -> Envelope[VerificationOutcome]:
        """Anchor one pending sample and await its confirmation.

        The confirmation wait is bounded by what is left of the sample's
        verification budget, measured from submission. Ledger outages leave
        the sample ``PENDING`` so a later call can retry; once an anchor has
        been committed its reference is kept and retries only re-confirm it.
        """
        request, errors = validate_request(
            meta=meta, model=SampleLookupRequest, payload={"sample_id": sample_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        async with self._locks.hold(request.sample_id):
            try:
                stored = self._repository.get(sample_id=request.sample_id)
            except Exception as exc:  # noqa: BLE001
                return self._dependency_failure(meta=meta, operation="verify", exc=exc)
            if stored is None:
                return failure(meta=meta, errors=[_unknown_sample(request.sample_id)])
            if stored.status != SampleStatus.PENDING:
                return success(meta=meta, payload=_outcome(stored))

            remaining = self._remaining_budget(stored)
            if remaining <= 0:
                return self._finish(meta=meta, stored=stored, proof_ref=None)

            proof_ref = stored.proof_ref
            if proof_ref is None:
                try:
                    proof_ref = await self._ledger.commit(
                        payload={
                            "op": "oracle_sample",
                            "sample_id": stored.sample_id,
                            "source_key": stored.source_key,
                            **stored.sample.model_dump(mode="json"),
                        }
                    )
                except Exception as exc:  # noqa: BLE001
                    return _ledger_failure(meta=meta, operation="verify", exc=exc)
                try:
                    self._repository.record_proof(
                        sample_id=stored.sample_id, proof_ref=proof_ref
                    )
                except Exception as exc:  # noqa: BLE001
                    return self._dependency_failure(
                        meta=meta, operation="verify", exc=exc
                    )
            else:
                _LOGGER.info(
                    "resuming sample confirmation: sample_id=%s proof_ref=%s",
                    stored.sample_id,
                    proof_ref,
                )

            try:
                confirmed = await asyncio.wait_for(
                    self._ledger.confirm(proof_ref=proof_ref), timeout=remaining
                )
            except TimeoutError:
                _LOGGER.warning(
                    "sample confirmation timed out: sample_id=%s budget_s=%.3f",
                    stored.sample_id,
                    remaining,
                )
                confirmed = False
            except Exception as exc:  # noqa: BLE001
                return _ledger_failure(meta=meta, operation="verify", exc=exc)

            return self._finish(
                meta=meta, stored=stored, proof_ref=proof_ref if confirmed else None
            )

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def expire_pending(self, *, meta: EnvelopeMeta) -> Envelope[int]:
        _, errors = validate_request(meta=meta, model=ExpirePendingRequest, payload={})
        if errors:
            return failure(meta=meta, errors=errors)

        cutoff = self._clock() - timedelta(
            seconds=self._settings.verification_timeout_seconds
        )
        expired = 0
        try:
            for stored in self._repository.list_pending(submitted_before=cutoff):
                if self._repository.transition(
                    sample_id=stored.sample_id, status=SampleStatus.FAILED
                ):
                    expired += 1
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta, operation="expire_pending", exc=exc
            )
        if expired:
            _LOGGER.info("expired pending samples: count=%d", expired)
        return success(meta=meta, payload=expired)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("shipment_id",),
    )
    def verified_window(
        self,
        *,
        meta: EnvelopeMeta,
        device_ids: Sequence[str] = (),
        shipment_id: str | None = None,
        since: int | None = None,
        until: int | None = None,
    ) -> Envelope[tuple[StoredSample, ...]]:
        request, errors = validate_request(
            meta=meta,
            model=VerifiedWindowRequest,
            payload={
                "device_ids": tuple(device_ids),
                "shipment_id": shipment_id,
                "since": since,
                "until": until,
            },
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        source_keys = {f"device:{device_id}" for device_id in request.device_ids}
        if request.shipment_id:
            source_keys.add(f"shipment:{request.shipment_id}")
        try:
            window = self._repository.list_verified(
                source_keys=source_keys, since=request.since, until=request.until
            )
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(
                meta=meta, operation="verified_window", exc=exc
            )
        return success(meta=meta, payload=window)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("sample_id",),
    )
    def get_sample(self, *, meta: EnvelopeMeta, sample_id: str) -> Envelope[StoredSample]:
        request, errors = validate_request(
            meta=meta, model=SampleLookupRequest, payload={"sample_id": sample_id}
        )
        if errors:
            return failure(meta=meta, errors=errors)
        assert request is not None

        try:
            stored = self._repository.get(sample_id=request.sample_id)
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="get_sample", exc=exc)
        if stored is None:
            return failure(meta=meta, errors=[_unknown_sample(request.sample_id)])
        return success(meta=meta, payload=stored)

    @public_api_instrumented(logger=_LOGGER, component_id=str(SERVICE_COMPONENT_ID))
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        ledger = self._ledger.health()
        try:
            pending = len(self._repository.list_pending())
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="health", exc=exc)
        return success(
            meta=meta,
            payload=HealthStatus(
                service_ready=True,
                ledger_ready=ledger.adapter_ready,
                pending_samples=pending,
                detail=ledger.detail,
            ),
        )

    def _remaining_budget(self, stored: StoredSample) -> float:
        deadline = stored.submitted_at + timedelta(
            seconds=self._settings.verification_timeout_seconds
        )
        return (deadline - self._clock()).total_seconds()

    def _finish(
        self,
        *,
        meta: EnvelopeMeta,
        stored: StoredSample,
        proof_ref: str | None,
    ) -> Envelope[VerificationOutcome]:
        """Record the terminal status; ``proof_ref is None`` means failed."""
        status = SampleStatus.VERIFIED if proof_ref is not None else SampleStatus.FAILED
        try:
            moved = self._repository.transition(
                sample_id=stored.sample_id, status=status, proof_ref=proof_ref
            )
            current = (
                stored.model_copy(update={"status": status, "proof_ref": proof_ref})
                if moved
                else self._repository.get(sample_id=stored.sample_id)
            )
        except Exception as exc:  # noqa: BLE001
            return self._dependency_failure(meta=meta, operation="verify", exc=exc)
        if current is None:
            return failure(meta=meta, errors=[_unknown_sample(stored.sample_id)])

        if moved:
            mirror_activity(
                self._activity,
                meta=meta,
                kind=_activity_kind(stored.sample),
                description=_describe(stored.sample),
                reference=stored.sample_id,
                proof_ref=proof_ref,
                status=(
                    ActivityStatus.CONFIRMED
                    if status == SampleStatus.VERIFIED
                    else ActivityStatus.FAILED
                ),
            )
        return success(meta=meta, payload=_outcome(current))

    def _dependency_failure(
        self,
        *,
        meta: EnvelopeMeta,
        operation: str,
        exc: Exception,
    ) -> Envelope[object]:
        """Map repository exceptions into dependency-category envelope errors."""
        _LOGGER.warning(
            "Oracle ingest operation failed due to dependency error: operation=%s exception_type=%s",
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
                        "resource": "sample_repository",
                        "exception_type": type(exc).__name__,
                    },
                )
            ],
        )


def _outcome(stored: StoredSample) -> VerificationOutcome:
    return VerificationOutcome(
        sample_id=stored.sample_id,
        verified=stored.verified,
        proof_ref=stored.proof_ref,
        status=stored.status,
    )


def _rejected(
    *, meta: EnvelopeMeta, source_key: str, reason: str
) -> Envelope[SubmitReceipt]:
    _LOGGER.info("sample rejected: source_key=%s reason=%s", source_key, reason)
    return failure(
        meta=meta,
        errors=[sample_rejected_error(reason, source_key=source_key)],
        payload=SubmitReceipt(accepted=False, reason=reason),
    )


def _unknown_sample(sample_id: str) -> ErrorDetail:
    return not_found_error(
        f"sample not found: {sample_id}",
        code=codes.UNKNOWN_SAMPLE,
        metadata={"sample_id": sample_id},
    )


def _ledger_failure(
    *, meta: EnvelopeMeta, operation: str, exc: Exception
) -> Envelope[object]:
    _LOGGER.warning(
        "Ledger call failed; sample left pending: operation=%s exception_type=%s",
        operation,
        type(exc).__name__,
        exc_info=exc,
    )
    return failure(meta=meta, errors=[ledger_unavailable_error(operation, exc=exc)])


def _activity_kind(sample: SensorSample | LocationSample) -> ActivityKind:
    if isinstance(sample, LocationSample):
        return ActivityKind.GPS_DATA
    return ActivityKind.IOT_DATA


def _describe(sample: SensorSample | LocationSample) -> str:
    if isinstance(sample, LocationSample):
        return (
            f"GPS fix {sample.latitude:.5f},{sample.longitude:.5f} "
            f"for shipment {sample.shipment_id}"
        )
    return (
        f"{sample.sensor_type.value.capitalize()} reading {sample.value:g} {sample.unit} "
        f"from {sample.device_id}"
    )
