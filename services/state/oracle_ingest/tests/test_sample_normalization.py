"""Unit tests for oracle sample admission rules."""

from __future__ import annotations

import math

import pytest

from services.state.oracle_ingest.domain import (
    LocationSample,
    SampleRejection,
    SensorSample,
    SensorType,
    normalize_sample,
)

_NOW = 1_700_000_000


def _sensor(sensor_type: SensorType, value: float, unit: str = "", observed_at: int = _NOW):
    return SensorSample(
        device_id="dev-1",
        sensor_type=sensor_type,
        value=value,
        unit=unit,
        observed_at=observed_at,
    )


def _normalize(sample):
    return normalize_sample(sample, now_unix=_NOW, skew_tolerance_seconds=300)


@pytest.mark.parametrize(
    ("unit", "value", "expected"),
    [
        ("°C", 4.0, 4.0),
        ("celsius", -12.5, -12.5),
        ("F", 46.4, 8.0),
        ("kelvin", 281.15, 8.0),
        ("", 21.0, 21.0),
    ],
)
def test_temperature_is_converted_to_celsius(unit: str, value: float, expected: float) -> None:
    normalized = _normalize(_sensor(SensorType.TEMPERATURE, value, unit))

    assert normalized.unit == "°C"
    assert math.isclose(normalized.value, expected, abs_tol=1e-6)


def test_pressure_in_kilopascal_is_converted() -> None:
    normalized = _normalize(_sensor(SensorType.PRESSURE, 101.3, "kPa"))
    assert normalized.unit == "hPa"
    assert math.isclose(normalized.value, 1013.0)


def test_unsupported_unit_is_rejected() -> None:
    with pytest.raises(SampleRejection, match="unsupported unit"):
        _normalize(_sensor(SensorType.HUMIDITY, 50.0, "g/m3"))


@pytest.mark.parametrize(
    ("sensor_type", "value"),
    [
        (SensorType.HUMIDITY, 101.0),
        (SensorType.HUMIDITY, -0.5),
        (SensorType.TEMPERATURE, 151.0),
        (SensorType.PRESSURE, 250.0),
        (SensorType.VIBRATION, 75.0),
        (SensorType.LIGHT, -1.0),
    ],
)
def test_out_of_range_values_are_rejected(sensor_type: SensorType, value: float) -> None:
    with pytest.raises(SampleRejection, match="outside physical range"):
        _normalize(_sensor(sensor_type, value))


def test_non_finite_value_is_rejected() -> None:
    with pytest.raises(SampleRejection, match="finite"):
        _normalize(_sensor(SensorType.TEMPERATURE, float("nan")))


def test_future_timestamp_beyond_tolerance_is_rejected() -> None:
    _normalize(_sensor(SensorType.TEMPERATURE, 5.0, observed_at=_NOW + 300))
    with pytest.raises(SampleRejection, match="in the future"):
        _normalize(_sensor(SensorType.TEMPERATURE, 5.0, observed_at=_NOW + 3600))


def test_non_positive_timestamp_is_rejected() -> None:
    with pytest.raises(SampleRejection, match="positive"):
        _normalize(_sensor(SensorType.TEMPERATURE, 5.0, observed_at=0))


def test_location_coordinates_are_range_checked() -> None:
    ok = LocationSample(shipment_id="S-1", latitude=52.37, longitude=4.89, observed_at=_NOW)
    assert _normalize(ok) == ok

    with pytest.raises(SampleRejection, match="latitude"):
        _normalize(ok.model_copy(update={"latitude": 91.0}))
    with pytest.raises(SampleRejection, match="longitude"):
        _normalize(ok.model_copy(update={"longitude": -180.5}))


def test_source_keys_distinguish_devices_and_shipments() -> None:
    assert _sensor(SensorType.LIGHT, 10.0).source_key == "device:dev-1"
    location = LocationSample(shipment_id="dev-1", latitude=0, longitude=0, observed_at=_NOW)
    assert location.source_key == "shipment:dev-1"
