"""Unit tests for aggregate component health evaluation."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from pydantic import BaseModel, ConfigDict

from packages.protrack_core import health as health_module
from packages.protrack_shared.envelope import (
    EnvelopeKind,
    EnvelopeMeta,
    empty,
    failure,
    new_meta,
    success,
)
from packages.protrack_shared.errors import dependency_error


class _HealthPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    ledger_ready: bool = True
    detail: str = "ok"


@dataclass(frozen=True)
class _Manifest:
    id: str


class _Registry:
    def list_services(self) -> tuple[_Manifest, ...]:
        return (
            _Manifest(id="service_provenance_store"),
            _Manifest(id="service_sla_evaluator"),
        )

    def list_resources(self) -> tuple[_Manifest, ...]:
        return (_Manifest(id="adapter_ledger"),)


class _HealthyService:
    def health(self, *, meta: EnvelopeMeta):
        return success(meta=meta, payload=_HealthPayload(service_ready=True))


class _DegradedService:
    def health(self, *, meta: EnvelopeMeta):
        return success(
            meta=meta,
            payload=_HealthPayload(
                service_ready=True, ledger_ready=False, detail="ledger down"
            ),
        )


class _FailingService:
    def health(self, *, meta: EnvelopeMeta):
        return failure(meta=meta, errors=[dependency_error("store down")])


class _RaisingService:
    def health(self, *, meta: EnvelopeMeta):
        raise ConnectionError("gone")


class _Probe:
    """Stands in for a service without a health probe."""


class _Resource:
    def __init__(self, ready: bool) -> None:
        self._ready = ready

    def health(self) -> dict[str, object]:
        return {"ready": self._ready, "detail": "ok" if self._ready else "refused"}


@pytest.fixture(autouse=True)
def _registry(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(health_module, "get_registry", lambda: _Registry())


def _evaluate(service: object, resource: object | None = None):
    components = {
        "service_provenance_store": service,
        "service_sla_evaluator": _Probe(),
    }
    if resource is not None:
        components["adapter_ledger"] = resource
    return health_module.evaluate_core_health(components=components)


def test_all_ready_components_report_ready() -> None:
    result = _evaluate(_HealthyService(), _Resource(True))

    assert result.ready is True
    assert result.services["service_provenance_store"].detail == "ok"
    assert result.services["service_sla_evaluator"].detail == "no health probe"
    assert result.resources["adapter_ledger"].ready is True


def test_false_ready_field_in_payload_degrades_service() -> None:
    result = _evaluate(_DegradedService(), _Resource(True))

    assert result.ready is False
    assert result.services["service_provenance_store"].ready is False
    assert result.services["service_provenance_store"].detail == "ledger down"


def test_failure_envelope_reports_error_messages() -> None:
    result = _evaluate(_FailingService(), _Resource(True))

    assert result.services["service_provenance_store"].ready is False
    assert result.services["service_provenance_store"].detail == "store down"


def test_raising_probe_is_reported_not_propagated() -> None:
    result = _evaluate(_RaisingService(), _Resource(True))

    assert result.services["service_provenance_store"].detail == (
        "health() raised ConnectionError"
    )


def test_missing_component_is_not_ready() -> None:
    result = _evaluate(_HealthyService())

    assert result.ready is False
    assert result.resources["adapter_ledger"].detail == "component not instantiated"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, (True, "ok")),
        (False, (False, "not ready")),
        ({"adapter_ready": True, "detail": "fine"}, (True, "fine")),
        ({"unrelated": 1}, (False, "health() result missing readiness fields")),
        (3, (False, "health() returned unsupported result")),
    ],
)
def test_readiness_of_probe_result_shapes(value: object, expected: tuple[bool, str]) -> None:
    assert health_module.readiness_of(value) == expected


def test_envelope_without_payload_is_ready() -> None:
    meta = new_meta(kind=EnvelopeKind.RESULT, source="test", principal="test")

    assert health_module.readiness_of(empty(meta=meta)) == (True, "ok")
