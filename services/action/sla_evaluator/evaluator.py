"""Pure SLA evaluation over a window of oracle samples."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from packages.protrack_shared.time_utils import ensure_utc
from services.action.sla_evaluator.domain import SlaConditions, SLAVerdict
from services.action.sla_evaluator.geodesy import haversine_km
from services.action.sla_evaluator.penalties import DEFAULT_PENALTY_POLICY, PenaltyPolicy
from services.state.oracle_ingest.domain import (
    LocationSample,
    SensorSample,
    SensorType,
    StoredSample,
)


def evaluate(
    conditions: SlaConditions,
    samples: Iterable[StoredSample],
    *,
    now: datetime,
    started_at: datetime,
    penalty_policy: PenaltyPolicy = DEFAULT_PENALTY_POLICY,
) -> SLAVerdict:
    """Reconcile ``samples`` against ``conditions``.

    Unverified samples are ignored. Every offending sample contributes its own
    violation; nothing short-circuits. The result depends only on the
    arguments, so identical inputs yield identical verdicts. An empty window
    produces no sample-based violations.
    """
    ordered = sorted(
        (stored for stored in samples if stored.verified),
        key=lambda stored: (stored.observed_at, stored.sample_id),
    )
    sensors = [s.sample for s in ordered if isinstance(s.sample, SensorSample)]
    locations = [s.sample for s in ordered if isinstance(s.sample, LocationSample)]

    violations: list[str] = []
    violations.extend(_temperature_violations(conditions, sensors))
    violations.extend(_location_violations(conditions, locations))
    violations.extend(_delivery_violations(conditions, now=now, started_at=started_at))

    if not violations:
        return SLAVerdict(compliant=True)
    return SLAVerdict(
        compliant=False,
        violations=tuple(violations),
        penalty_amount=penalty_policy(violations),
    )


def _temperature_violations(
    conditions: SlaConditions, sensors: list[SensorSample]
) -> list[str]:
    low, high = conditions.min_temperature, conditions.max_temperature
    if low is None and high is None:
        return []
    found: list[str] = []
    for sample in sensors:
        if sample.sensor_type != SensorType.TEMPERATURE:
            continue
        where = f"(device {sample.device_id} at {sample.observed_at})"
        if high is not None and sample.value > high:
            found.append(
                f"Temperature exceeded: {sample.value:g} > {high:g} {sample.unit} {where}"
            )
        if low is not None and sample.value < low:
            found.append(
                f"Temperature too low: {sample.value:g} < {low:g} {sample.unit} {where}"
            )
    return found


def _location_violations(
    conditions: SlaConditions, locations: list[LocationSample]
) -> list[str]:
    required = conditions.required_location
    if required is None:
        return []
    found: list[str] = []
    for sample in locations:
        distance = haversine_km(sample.latitude, sample.longitude, required.lat, required.lon)
        if distance > required.radius_km:
            found.append(
                f"Location deviation: {distance:.1f} km from required point exceeds "
                f"{required.radius_km:g} km radius "
                f"(shipment {sample.shipment_id} at {sample.observed_at})"
            )
    return found


def _delivery_violations(
    conditions: SlaConditions, *, now: datetime, started_at: datetime
) -> list[str]:
    bound = conditions.max_delivery_time
    if bound is None:
        return []
    elapsed = (ensure_utc(now) - ensure_utc(started_at)).total_seconds()
    if elapsed <= bound:
        return []
    return [f"Delivery time exceeded: {elapsed:.0f}s > {bound}s"]
