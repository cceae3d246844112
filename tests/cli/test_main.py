"""CLI tests for the ProTrack Typer commands."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from actors.cli import main as cli
from packages.protrack_core import ProTrackDependencyError
from packages.protrack_shared.errors import codes
from packages.protrack_shared.time_utils import utc_now


class _Runner:
    """Invoke the CLI against one file-backed database."""

    def __init__(self, database: Path) -> None:
        self._runner = CliRunner()
        self._base = ["--database-url", f"sqlite+pysqlite:///{database}", "--json"]

    def invoke(self, *args: str):
        return self._runner.invoke(cli.app, [*self._base, *args])

    def json(self, *args: str) -> Any:
        result = self.invoke(*args)
        assert result.exit_code == 0, result.output
        return json.loads(result.stdout.strip().splitlines()[-1])


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> _Runner:
    monkeypatch.setenv("PROTRACK_LOGGING__LEVEL", "WARNING")
    return _Runner(tmp_path / "protrack.db")


def _mint(runner: _Runner) -> str:
    minted = runner.json(
        "mint",
        "--name",
        "Vaccine crate",
        "--sku",
        "VC-1",
        "--batch-id",
        "B-1",
        "--manufacturer",
        "acme",
        "--location",
        "Plant",
    )
    return minted["unit_id"]


def test_custody_handoff_persists_across_invocations(runner: _Runner) -> None:
    unit_id = _mint(runner)
    acme = runner.json("issue-token", "acme")

    runner.json(
        "append-event",
        unit_id,
        "--kind",
        "Shipped",
        "--actor",
        "acme",
        "--token",
        acme["token"],
        "--location",
        "Dock 4",
        "--payload",
        '{"custodian": "carrier"}',
    )

    history = runner.json("history", unit_id)
    snapshot = runner.json("snapshot", unit_id)
    assert [event["kind"] for event in history] == ["Shipped"]
    assert snapshot["custodian"] == "carrier"
    assert snapshot["location"] == "Dock 4"


def test_append_with_forged_token_exits_with_domain_error(runner: _Runner) -> None:
    unit_id = _mint(runner)

    result = runner.invoke(
        "append-event",
        unit_id,
        "--kind",
        "Inspected",
        "--actor",
        "acme",
        "--token",
        "forged",
    )

    assert result.exit_code == cli.DOMAIN_ERROR_EXIT_CODE
    assert codes.STALE_ACTOR in result.output


def test_hot_reading_penalizes_escrow_end_to_end(runner: _Runner) -> None:
    unit_id = _mint(runner)
    buyer = runner.json("issue-token", "buyer")
    escrow = runner.json(
        "create-escrow",
        unit_id,
        "--payer",
        "buyer",
        "--token",
        buyer["token"],
        "--payee",
        "acme",
        "--amount",
        "100",
        "--deliver-by",
        (utc_now() + timedelta(days=1)).replace(tzinfo=None).isoformat(timespec="seconds"),
        "--max-temperature",
        "8",
        "--device-id",
        "probe-1",
    )

    verified = runner.json(
        "submit-sensor",
        "--device-id",
        "probe-1",
        "--sensor-type",
        "temperature",
        "--value",
        "12",
        "--unit",
        "C",
        "--verify",
    )
    outcome = runner.json("settle", escrow["escrow_id"])
    status = runner.json("status", escrow["escrow_id"])
    replay = runner.invoke("settle", escrow["escrow_id"])
    report = runner.json("score", unit_id)

    assert verified["verified"] is True
    assert outcome["state"] == "PENALIZED"
    assert outcome["verdict"]["compliant"] is False
    assert status["state"] == "PENALIZED"
    assert replay.exit_code == cli.DOMAIN_ERROR_EXIT_CODE
    assert codes.NOT_OPEN in replay.output
    assert "SLA violations detected in supply chain" in report["risk_factors"]


def test_unknown_unit_exits_with_domain_error(runner: _Runner) -> None:
    result = runner.invoke("snapshot", "01JUNKNOWNUNIT0000000000000")

    assert result.exit_code == cli.DOMAIN_ERROR_EXIT_CODE
    assert codes.UNKNOWN_UNIT in result.output


def test_dependency_error_exits_with_code_4(
    runner: _Runner, monkeypatch: pytest.MonkeyPatch
) -> None:
    class _Runtime:
        def health(self):
            raise ProTrackDependencyError(message="ledger down", operation="health")

        def dispose(self) -> None:
            return None

    monkeypatch.setattr(cli, "_build_runtime", lambda cfg: _Runtime())

    result = runner.invoke("health")

    assert result.exit_code == cli.DEPENDENCY_ERROR_EXIT_CODE


def test_health_reports_ready_components(runner: _Runner) -> None:
    payload = runner.json("health")

    assert payload["ready"] is True
    assert payload["resources"]["substrate_sql"]["ready"] is True


def test_invalid_payload_is_a_usage_error(runner: _Runner) -> None:
    result = runner.invoke(
        "append-event",
        "unit",
        "--kind",
        "Inspected",
        "--actor",
        "acme",
        "--token",
        "t",
        "--payload",
        "[1, 2]",
    )

    assert result.exit_code == 2
