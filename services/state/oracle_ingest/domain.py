"""Domain contracts and admission rules for oracle samples."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class SensorType(str, Enum):
    """Physical quantity a sensor sample reports."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    PRESSURE = "pressure"
    VIBRATION = "vibration"
    LIGHT = "light"


class SampleStatus(str, Enum):
    """Verification state of a stored sample."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"


class SensorSample(BaseModel):
    """One reading from an IoT device."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    kind: Literal["sensor"] = "sensor"
    device_id: str = Field(min_length=1, max_length=128)
    sensor_type: SensorType
    value: float
    unit: str = ""
    observed_at: int

    @property
    def source_key(self) -> str:
        return f"device:{self.device_id}"


class LocationSample(BaseModel):
    """One GPS fix reported for a shipment."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    kind: Literal["location"] = "location"
    shipment_id: str = Field(min_length=1, max_length=128)
    latitude: float
    longitude: float
    observed_at: int

    @property
    def source_key(self) -> str:
        return f"shipment:{self.shipment_id}"


OracleSample = Annotated[
    Union[SensorSample, LocationSample], Field(discriminator="kind")
]
SAMPLE_ADAPTER: TypeAdapter[SensorSample | LocationSample] = TypeAdapter(OracleSample)


class StoredSample(BaseModel):
    """A normalised sample with its verification state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sample_id: str
    sample: OracleSample
    status: SampleStatus
    submitted_at: datetime
    proof_ref: str | None = None

    @property
    def verified(self) -> bool:
        return self.status == SampleStatus.VERIFIED

    @property
    def source_key(self) -> str:
        return self.sample.source_key

    @property
    def observed_at(self) -> int:
        return self.sample.observed_at


class SubmitReceipt(BaseModel):
    """Admission outcome; rejected receipts ride on failure envelopes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    accepted: bool
    sample_id: str | None = None
    reason: str = ""


class VerificationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    sample_id: str
    verified: bool
    proof_ref: str | None
    status: SampleStatus


class HealthStatus(BaseModel):
    """OracleIngest and ledger readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    ledger_ready: bool
    pending_samples: int
    detail: str


class SampleRejection(ValueError):
    """A sample failed an admission rule."""


PHYSICAL_RANGES: dict[SensorType, tuple[float, float]] = {
    SensorType.TEMPERATURE: (-80.0, 150.0),
    SensorType.HUMIDITY: (0.0, 100.0),
    SensorType.PRESSURE: (300.0, 1100.0),
    SensorType.VIBRATION: (0.0, 50.0),
    SensorType.LIGHT: (0.0, 200000.0),
}

CANONICAL_UNITS: dict[SensorType, str] = {
    SensorType.TEMPERATURE: "°C",
    SensorType.HUMIDITY: "%",
    SensorType.PRESSURE: "hPa",
    SensorType.VIBRATION: "g",
    SensorType.LIGHT: "lux",
}


def _identity(value: float) -> float:
    return value


def _fahrenheit_to_celsius(value: float) -> float:
    return (value - 32.0) * 5.0 / 9.0


def _kelvin_to_celsius(value: float) -> float:
    return value - 273.15


def _kpa_to_hpa(value: float) -> float:
    return value * 10.0


# Accepted unit spellings (lowercased) and their conversion into the canonical unit.
_UNIT_CONVERSIONS: dict[SensorType, dict[str, Callable[[float], float]]] = {
    SensorType.TEMPERATURE: {
        "°c": _identity,
        "c": _identity,
        "celsius": _identity,
        "°f": _fahrenheit_to_celsius,
        "f": _fahrenheit_to_celsius,
        "fahrenheit": _fahrenheit_to_celsius,
        "k": _kelvin_to_celsius,
        "kelvin": _kelvin_to_celsius,
    },
    SensorType.HUMIDITY: {"%": _identity, "%rh": _identity, "percent": _identity},
    SensorType.PRESSURE: {
        "hpa": _identity,
        "mbar": _identity,
        "kpa": _kpa_to_hpa,
    },
    SensorType.VIBRATION: {"g": _identity},
    SensorType.LIGHT: {"lux": _identity, "lx": _identity},
}


def normalize_sample(
    sample: SensorSample | LocationSample,
    *,
    now_unix: int,
    skew_tolerance_seconds: int,
) -> SensorSample | LocationSample:
    """Apply admission rules and return the sample in canonical units.

    Raises ``SampleRejection`` naming the first rule the sample breaks.
    """
    if sample.observed_at <= 0:
        raise SampleRejection(f"observed_at must be positive, got {sample.observed_at}")
    if sample.observed_at > now_unix + skew_tolerance_seconds:
        raise SampleRejection(
            f"observed_at {sample.observed_at} is {sample.observed_at - now_unix}s "
            f"in the future (tolerance {skew_tolerance_seconds}s)"
        )
    if isinstance(sample, LocationSample):
        _require_range("latitude", sample.latitude, -90.0, 90.0)
        _require_range("longitude", sample.longitude, -180.0, 180.0)
        return sample

    conversions = _UNIT_CONVERSIONS[sample.sensor_type]
    unit_key = sample.unit.lower() or CANONICAL_UNITS[sample.sensor_type].lower()
    convert = conversions.get(unit_key)
    if convert is None:
        raise SampleRejection(
            f"unsupported unit {sample.unit!r} for {sample.sensor_type.value}"
        )
    if not math.isfinite(sample.value):
        raise SampleRejection(f"{sample.sensor_type.value} value must be finite")
    value = round(convert(sample.value), 6)
    low, high = PHYSICAL_RANGES[sample.sensor_type]
    _require_range(sample.sensor_type.value, value, low, high)
    return sample.model_copy(
        update={"value": value, "unit": CANONICAL_UNITS[sample.sensor_type]}
    )


def _require_range(name: str, value: float, low: float, high: float) -> None:
    if not math.isfinite(value) or value < low or value > high:
        raise SampleRejection(f"{name} {value:g} outside physical range [{low:g}, {high:g}]")
