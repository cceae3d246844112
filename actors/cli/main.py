"""`protrack` command line: one runtime per invocation, results on stdout.

Exit codes: 0 success, 2 bad usage, 3 domain failure, 4 dependency failure.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

import typer

from actors.cli.render import emit_error, emit_result
from packages.protrack_core import (
    ProTrackDependencyError,
    ProTrackDomainError,
    ProTrackRuntime,
    unwrap,
)
from packages.protrack_shared.config import load_settings
from packages.protrack_shared.envelope import Envelope
from packages.protrack_shared.ids import generate_ulid_str
from packages.protrack_shared.logging import configure_logging
from packages.protrack_shared.time_utils import ensure_utc, to_unix_seconds, utc_now
from resources.adapters.signing import ActorCapability
from services.action.sla_evaluator import RequiredLocation, SlaConditions
from services.state.oracle_ingest import LocationSample, SensorSample, SensorType
from services.state.provenance_store import EventDraft, UnitDescriptor

DOMAIN_ERROR_EXIT_CODE = 3
DEPENDENCY_ERROR_EXIT_CODE = 4

T = TypeVar("T")


@dataclass(frozen=True)
class CliConfig:
    config_path: str | None
    database_url: str | None
    principal: str
    as_json: bool


def _build_runtime(cfg: CliConfig) -> ProTrackRuntime:
    """Build one runtime from the global CLI options."""
    overrides: dict[str, Any] = {}
    if cfg.database_url:
        overrides["components"] = {"substrate": {"sql": {"url": cfg.database_url}}}
    settings = load_settings(config_path=cfg.config_path, **overrides)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
        stream=sys.stderr,
    )
    return ProTrackRuntime.build(settings)


def _run_command(cfg: CliConfig, invoke: Callable[[ProTrackRuntime], Any]) -> None:
    """Execute one runtime call and map results and errors to exit codes."""
    runtime = _build_runtime(cfg)
    try:
        result = invoke(runtime)
    except ProTrackDomainError as exc:
        emit_error(exc, as_json=cfg.as_json)
        exit_code = (
            DEPENDENCY_ERROR_EXIT_CODE
            if isinstance(exc, ProTrackDependencyError)
            else DOMAIN_ERROR_EXIT_CODE
        )
        raise typer.Exit(code=exit_code) from exc
    finally:
        runtime.dispose()
    emit_result(result, as_json=cfg.as_json)


def _await(call: Awaitable[Envelope[T]], operation: str) -> T | None:
    return unwrap(asyncio.run(call), operation=operation)


def _require_config(ctx: typer.Context) -> CliConfig:
    assert isinstance(ctx.obj, CliConfig), "main callback did not run"
    return ctx.obj


def _capability(actor: str, token: str) -> ActorCapability:
    return ActorCapability(actor=actor, token=token)


def _parse_decimal(raw: str, *, name: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise typer.BadParameter(f"{name} must be a decimal number") from exc


def _parse_payload(raw: str) -> dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter("payload must be a JSON object") from exc
    if not isinstance(value, dict):
        raise typer.BadParameter("payload must be a JSON object")
    return value


def _observed_at(value: int | None) -> int:
    return to_unix_seconds(utc_now()) if value is None else value


app = typer.Typer(no_args_is_help=True, help="ProTrack provenance, escrow and SLA CLI")


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(
        None, "--config", envvar="PROTRACK_CONFIG", help="YAML settings file"
    ),
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        envvar="PROTRACK_DATABASE_URL",
        help="SQLAlchemy URL for the shared SQL substrate",
    ),
    principal: str = typer.Option("operator", help="Envelope principal"),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """Store global options for all commands."""
    ctx.obj = CliConfig(
        config_path=config,
        database_url=database_url,
        principal=principal,
        as_json=as_json,
    )


@app.command("issue-token")
def issue_token(
    ctx: typer.Context, actor: str = typer.Argument(..., help="Actor id")
) -> None:
    """Issue a capability token for an actor."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda runtime: runtime.issue_capability(actor))


@app.command("mint")
def mint(
    ctx: typer.Context,
    name: str = typer.Option("", help="Product name"),
    sku: str = typer.Option("", help="Stock keeping unit"),
    batch_id: str = typer.Option("", help="Batch id"),
    manufacturer: str = typer.Option("", help="Manufacturer; becomes the first custodian"),
    category: str = typer.Option("", help="Product category"),
    location: str = typer.Option("", help="Origin location"),
    value: str | None = typer.Option(None, help="Declared value"),
    expiry: datetime | None = typer.Option(None, help="Expiry timestamp (ISO 8601)"),
    idempotency_key: str | None = typer.Option(
        None, help="Retry key; a repeated key returns the original unit"
    ),
) -> None:
    """Mint a new tracked unit."""
    cfg = _require_config(ctx)
    descriptor = UnitDescriptor(
        name=name,
        sku=sku,
        batch_id=batch_id,
        manufacturer=manufacturer,
        category=category,
        location=location,
        value=None if value is None else _parse_decimal(value, name="value"),
        expiry_at=None if expiry is None else ensure_utc(expiry),
    )
    key = idempotency_key or generate_ulid_str()
    _run_command(
        cfg,
        lambda runtime: _await(
            runtime.mint(
                descriptor=descriptor, idempotency_key=key, principal=cfg.principal
            ),
            "mint",
        ),
    )


@app.command("append-event")
def append_event(
    ctx: typer.Context,
    unit_id: str = typer.Argument(..., help="Unit id"),
    kind: str = typer.Option(..., help="Event kind, e.g. Shipped or Received"),
    actor: str = typer.Option(..., help="Acting custodian"),
    token: str = typer.Option(..., help="Capability token for the actor"),
    description: str = typer.Option("", help="Free-text description"),
    location: str = typer.Option("", help="Event location"),
    payload: str = typer.Option("{}", help="JSON object payload"),
) -> None:
    """Append a custody or lifecycle event to a unit."""
    cfg = _require_config(ctx)
    event = EventDraft(
        kind=kind,
        description=description,
        location=location,
        payload=_parse_payload(payload),
    )
    _run_command(
        cfg,
        lambda runtime: _await(
            runtime.append_event(
                unit_id=unit_id, event=event, capability=_capability(actor, token)
            ),
            "append_event",
        ),
    )


@app.command("history")
def history(ctx: typer.Context, unit_id: str = typer.Argument(..., help="Unit id")) -> None:
    """Show the ordered event history of a unit."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda runtime: unwrap(
            runtime.history(unit_id, principal=cfg.principal), operation="history"
        ),
    )


@app.command("snapshot")
def snapshot(ctx: typer.Context, unit_id: str = typer.Argument(..., help="Unit id")) -> None:
    """Show the current location, value and custodian of a unit."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda runtime: unwrap(
            runtime.snapshot(unit_id, principal=cfg.principal), operation="snapshot"
        ),
    )


@app.command("submit-sensor")
def submit_sensor(
    ctx: typer.Context,
    device_id: str = typer.Option(..., help="Reporting device id"),
    sensor_type: SensorType = typer.Option(
        ..., case_sensitive=False, help="Measured quantity"
    ),
    value: float = typer.Option(..., help="Reading in canonical units"),
    unit: str = typer.Option("", help="Reading unit"),
    observed_at: int | None = typer.Option(None, help="Unix seconds; defaults to now"),
    verify: bool = typer.Option(False, "--verify", help="Anchor the sample immediately"),
) -> None:
    """Submit one sensor reading."""
    cfg = _require_config(ctx)
    sample = SensorSample(
        device_id=device_id,
        sensor_type=sensor_type,
        value=value,
        unit=unit,
        observed_at=_observed_at(observed_at),
    )
    _run_command(cfg, lambda runtime: _submit(runtime, cfg, sample, verify=verify))


@app.command("submit-location")
def submit_location(
    ctx: typer.Context,
    shipment_id: str = typer.Option(..., help="Tracked shipment id"),
    latitude: float = typer.Option(..., help="Latitude in degrees"),
    longitude: float = typer.Option(..., help="Longitude in degrees"),
    observed_at: int | None = typer.Option(None, help="Unix seconds; defaults to now"),
    verify: bool = typer.Option(False, "--verify", help="Anchor the sample immediately"),
) -> None:
    """Submit one location fix."""
    cfg = _require_config(ctx)
    sample = LocationSample(
        shipment_id=shipment_id,
        latitude=latitude,
        longitude=longitude,
        observed_at=_observed_at(observed_at),
    )
    _run_command(cfg, lambda runtime: _submit(runtime, cfg, sample, verify=verify))


def _submit(
    runtime: ProTrackRuntime,
    cfg: CliConfig,
    sample: SensorSample | LocationSample,
    *,
    verify: bool,
) -> Any:
    receipt = unwrap(
        runtime.submit_sample(sample, principal=cfg.principal), operation="submit"
    )
    if not verify or receipt is None or not receipt.accepted:
        return receipt
    assert receipt.sample_id is not None
    return _await(
        runtime.verify_sample(receipt.sample_id, principal=cfg.principal), "verify"
    )


@app.command("verify-sample")
def verify_sample(
    ctx: typer.Context, sample_id: str = typer.Argument(..., help="Pending sample id")
) -> None:
    """Anchor a pending sample and wait for confirmation."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda runtime: _await(
            runtime.verify_sample(sample_id, principal=cfg.principal), "verify"
        ),
    )


@app.command("create-escrow")
def create_escrow(
    ctx: typer.Context,
    unit_id: str = typer.Argument(..., help="Unit the escrow covers"),
    payer: str = typer.Option(..., help="Paying actor"),
    token: str = typer.Option(..., help="Capability token for the payer"),
    payee: str = typer.Option(..., help="Receiving party"),
    amount: str = typer.Option(..., help="Locked amount"),
    deliver_by: datetime = typer.Option(..., help="Delivery deadline (ISO 8601)"),
    min_temperature: float | None = typer.Option(None, help="Lowest allowed °C"),
    max_temperature: float | None = typer.Option(None, help="Highest allowed °C"),
    max_delivery_time: int | None = typer.Option(
        None, help="Seconds allowed from shipping to evaluation"
    ),
    required_lat: float | None = typer.Option(None, help="Required location latitude"),
    required_lon: float | None = typer.Option(None, help="Required location longitude"),
    radius_km: float | None = typer.Option(None, help="Required location radius"),
    shipment_id: str | None = typer.Option(None, help="Shipment supplying location fixes"),
    device_id: list[str] = typer.Option([], help="Device supplying sensor readings"),
) -> None:
    """Lock funds against a unit's delivery conditions."""
    cfg = _require_config(ctx)
    location_parts = (required_lat, required_lon, radius_km)
    if any(part is not None for part in location_parts) and None in location_parts:
        raise typer.BadParameter(
            "--required-lat, --required-lon and --radius-km must be given together"
        )
    conditions = SlaConditions(
        min_temperature=min_temperature,
        max_temperature=max_temperature,
        max_delivery_time=max_delivery_time,
        required_location=(
            None
            if required_lat is None
            else RequiredLocation(lat=required_lat, lon=required_lon, radius_km=radius_km)
        ),
    )
    locked = _parse_decimal(amount, name="amount")
    _run_command(
        cfg,
        lambda runtime: _await(
            runtime.create_escrow(
                unit_id=unit_id,
                payer=_capability(payer, token),
                payee=payee,
                amount=locked,
                conditions=conditions,
                expected_delivery_by=ensure_utc(deliver_by),
                shipment_id=shipment_id,
                device_ids=tuple(device_id),
            ),
            "create_escrow",
        ),
    )


@app.command("settle")
def settle(
    ctx: typer.Context, escrow_id: str = typer.Argument(..., help="Escrow id")
) -> None:
    """Evaluate an open escrow and settle it."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda runtime: _await(
            runtime.evaluate_and_settle(escrow_id, principal=cfg.principal),
            "evaluate_and_settle",
        ),
    )


@app.command("status")
def status(
    ctx: typer.Context, escrow_id: str = typer.Argument(..., help="Escrow id")
) -> None:
    """Show one escrow and its settlement."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda runtime: unwrap(
            runtime.status(escrow_id, principal=cfg.principal), operation="status"
        ),
    )


@app.command("score")
def score(ctx: typer.Context, unit_id: str = typer.Argument(..., help="Unit id")) -> None:
    """Compute the trust score of a unit."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda runtime: unwrap(
            runtime.score(unit_id, principal=cfg.principal), operation="score"
        ),
    )


@app.command("health")
def health(ctx: typer.Context) -> None:
    """Report readiness of every component."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda runtime: runtime.health())


@app.command("run-scheduler")
def run_scheduler(
    ctx: typer.Context,
    once: bool = typer.Option(False, "--once", help="Run a single sweep and exit"),
) -> None:
    """Run the settlement scheduler until interrupted."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda runtime: _schedule(runtime, once=once))


def _schedule(runtime: ProTrackRuntime, *, once: bool) -> Any:
    scheduler = runtime.scheduler()
    if once:
        return asyncio.run(scheduler.run_once())

    async def _forever() -> None:
        await scheduler.run_forever(asyncio.Event())

    try:
        asyncio.run(_forever())
    except KeyboardInterrupt:
        typer.echo("scheduler stopped", err=True)
    return None


if __name__ == "__main__":
    app()
