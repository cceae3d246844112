"""Unit tests for the OpenTelemetry tracing and metrics concerns."""

from __future__ import annotations

from unittest.mock import MagicMock, call

from opentelemetry.trace import StatusCode

from packages.protrack_shared.logging.public_api import (
    CompletionContext,
    InvocationContext,
    PublicApiMetricsConcern,
    PublicApiTracingConcern,
)

_SETTLE_REFS = {"escrow_id": "01JESCROW"}


def _settle_call(**changes: object) -> InvocationContext:
    params: dict = dict(
        component_id="service_escrow_engine",
        api_name="evaluate_and_settle",
        trace_id="01JTRACE",
        envelope_id="01JENVELOPE",
        principal="buyer",
        references=_SETTLE_REFS,
    )
    params.update(changes)
    return InvocationContext(**params)


def _done(invocation: InvocationContext, *errors: str, categories=()) -> CompletionContext:
    return CompletionContext(
        invocation=invocation,
        success=not errors and not categories,
        duration_ms=4.5,
        errors=list(errors),
        error_categories=list(categories),
    )


def _tracer() -> tuple[MagicMock, MagicMock]:
    tracer = MagicMock(name="tracer")
    span = tracer.start_as_current_span.return_value.__enter__.return_value
    return tracer, span


def _span_attributes(span: MagicMock) -> dict[str, object]:
    return {args[0]: args[1] for args, _ in span.set_attribute.call_args_list}


def test_span_wraps_one_call_and_carries_references() -> None:
    tracer, span = _tracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    settle = _settle_call()

    concern.on_invocation(settle)
    concern.on_completion(_done(settle))

    tracer.start_as_current_span.assert_called_once_with(
        "public_api.service_escrow_engine.evaluate_and_settle"
    )
    tracer.start_as_current_span.return_value.__exit__.assert_called_once_with(None, None, None)
    attributes = _span_attributes(span)
    assert attributes["principal"] == "buyer"
    assert attributes["reference.escrow_id"] == "01JESCROW"
    assert attributes["outcome"] == "success"
    span.record_exception.assert_not_called()
    span.set_status.assert_not_called()


def test_failed_call_sets_error_status_and_records_messages() -> None:
    tracer, span = _tracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    anonymous = _settle_call(trace_id=None, envelope_id=None, principal=None)

    concern.on_invocation(anonymous)
    concern.on_completion(
        _done(anonymous, "LEDGER_UNAVAILABLE: ledger unavailable", categories=["dependency"])
    )

    attributes = _span_attributes(span)
    assert "principal" not in attributes
    assert attributes["errors.count"] == 1
    (status,), _ = span.set_status.call_args
    assert status.status_code is StatusCode.ERROR
    (recorded,), _ = span.record_exception.call_args
    assert str(recorded) == "LEDGER_UNAVAILABLE: ledger unavailable"


def test_completion_for_unknown_call_opens_nothing() -> None:
    tracer, _ = _tracer()

    PublicApiTracingConcern(tracer=tracer).on_completion(_done(_settle_call()))

    tracer.start_as_current_span.assert_not_called()


def test_interleaved_calls_close_their_own_spans() -> None:
    tracer = MagicMock(name="tracer")
    first, second = MagicMock(name="first"), MagicMock(name="second")
    tracer.start_as_current_span.side_effect = [first, second]
    concern = PublicApiTracingConcern(tracer=tracer)
    one, two = _settle_call(), _settle_call()

    concern.on_invocation(one)
    concern.on_invocation(two)
    concern.on_completion(_done(one))

    first.__exit__.assert_called_once()
    second.__exit__.assert_not_called()


def test_successful_call_is_counted_and_timed() -> None:
    calls, durations, errors = MagicMock(), MagicMock(), MagicMock()
    concern = PublicApiMetricsConcern(calls=calls, durations=durations, errors=errors)

    concern.on_completion(_done(_settle_call()))

    expected = {
        "component_id": "service_escrow_engine",
        "api_name": "evaluate_and_settle",
        "outcome": "success",
    }
    calls.add.assert_called_once_with(1, attributes=expected)
    durations.record.assert_called_once_with(4.5, attributes=expected)
    errors.add.assert_not_called()


def test_each_error_category_is_counted_once() -> None:
    calls, errors = MagicMock(), MagicMock()
    concern = PublicApiMetricsConcern(calls=calls, durations=MagicMock(), errors=errors)

    concern.on_completion(_done(_settle_call(), categories=["dependency", "conflict"]))
    concern.on_completion(_done(_settle_call(), "INTERNAL_ERROR: boom"))

    categories = [kwargs["attributes"]["error_category"] for _, kwargs in errors.add.call_args_list]
    assert categories == ["dependency", "conflict", "unknown"]
    assert calls.add.call_args_list[0] == call(
        1,
        attributes={
            "component_id": "service_escrow_engine",
            "api_name": "evaluate_and_settle",
            "outcome": "failure",
        },
    )
