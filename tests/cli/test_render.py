"""Tests for CLI output rendering."""

from __future__ import annotations

import json
from decimal import Decimal
from enum import Enum

import pytest
from pydantic import BaseModel

from actors.cli import render
from packages.protrack_core import ProTrackConflictError, ProTrackDomainError
from packages.protrack_shared.errors import codes, conflict_error


class _Color(Enum):
    RED = "red"


class _Model(BaseModel):
    amount: Decimal
    color: _Color


def test_to_plain_handles_models_enums_and_decimals() -> None:
    assert render.to_plain(_Model(amount=Decimal("1.50"), color=_Color.RED)) == {
        "amount": "1.50",
        "color": "red",
    }
    assert render.to_plain((1, None, "x")) == [1, None, "x"]


def test_emit_error_without_codes(capsys: pytest.CaptureFixture[str]) -> None:
    render.emit_error(
        ProTrackDomainError(message="settle failed", operation="settle"), as_json=False
    )

    assert capsys.readouterr().err.startswith("error: ")


def test_emit_error_json_lists_codes(capsys: pytest.CaptureFixture[str]) -> None:
    error = ProTrackConflictError(
        message="settle failed: closed",
        operation="settle",
        details=(conflict_error("closed", code=codes.NOT_OPEN),),
    )

    render.emit_error(error, as_json=True)

    assert json.loads(capsys.readouterr().err)["codes"] == [codes.NOT_OPEN]


def test_emit_result_prints_ok_for_none(capsys: pytest.CaptureFixture[str]) -> None:
    render.emit_result(None, as_json=False)

    assert capsys.readouterr().out == "ok\n"


def test_render_core_health_lists_degraded_details() -> None:
    rendered = render.render_core_health(
        {
            "ready": False,
            "services": {"service_escrow_engine": {"ready": True, "detail": "ok"}},
            "resources": {"adapter_ledger": {"ready": False, "detail": "ledger unavailable"}},
        }
    )

    assert rendered.splitlines()[0] == "ProTrack: degraded"
    assert "Services: healthy" in rendered
    assert "  Escrow Engine: healthy (ok)" in rendered
    assert "  Ledger: degraded (ledger unavailable)" in rendered


def test_render_human_recognizes_scores() -> None:
    rendered = render.render_human(
        {"score": 70, "level": "MEDIUM", "risk_factors": ["Missing expiry date"]}
    )

    assert rendered == "Score: 70 (MEDIUM)\n- Missing expiry date"
