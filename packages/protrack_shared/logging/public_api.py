"""Instrumentation for public service methods.

``public_api_instrumented`` wraps a sync or coroutine method and reports one
invocation and one completion per call to every configured concern. A logging
concern is added when a logger is supplied; tracing and metrics concerns are
always present and bound to the global OpenTelemetry providers. A concern that
raises is logged and counted, and the wrapped call carries on.
"""

from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from functools import lru_cache, wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace.status import Status, StatusCode

from packages.protrack_shared.config import load_settings
from packages.protrack_shared.envelope import Envelope

from . import fields
from .context import log_context

_SPAN_ERROR_SAMPLE = 3


@dataclass(frozen=True, eq=False)
class InvocationContext:
    """Who called which method, with the ids it was called for."""

    component_id: str
    api_name: str
    trace_id: str | None
    envelope_id: str | None
    principal: str | None
    references: Mapping[str, str]

    @property
    def span_name(self) -> str:
        return f"public_api.{self.component_id}.{self.api_name}"

    def log_fields(self, event: str) -> dict[str, object]:
        return {
            fields.EVENT: event,
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            fields.TRACE_ID: self.trace_id,
            fields.ENVELOPE_ID: self.envelope_id,
            fields.PRINCIPAL: self.principal,
            **self.references,
        }


@dataclass(frozen=True)
class CompletionContext:
    """How one invocation ended."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_categories: list[str]

    @property
    def outcome(self) -> str:
        return fields.OUTCOME_SUCCESS if self.success else fields.OUTCOME_FAILURE

    def metric_attributes(self) -> dict[str, str]:
        return {
            fields.COMPONENT_ID: self.invocation.component_id,
            fields.API_NAME: self.invocation.api_name,
            fields.OUTCOME: self.outcome,
        }


class PublicApiInstrumentationConcern(Protocol):
    def on_invocation(self, context: InvocationContext) -> None:
        """Called before the wrapped method runs."""

    def on_completion(self, context: CompletionContext) -> None:
        """Called once the wrapped method returned or raised."""


class PublicApiLoggingConcern:
    """One INFO record per call, and a completion record at INFO or WARNING."""

    def __init__(self, *, logger: logging.Logger) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        with log_context(context.log_fields(fields.INVOCATION_EVENT)):
            self._logger.info("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        values = context.invocation.log_fields(fields.COMPLETION_EVENT)
        values[fields.OUTCOME] = context.outcome
        values[fields.DURATION_MS] = context.duration_ms
        if context.errors:
            values[fields.ERRORS] = "; ".join(context.errors)
        level = logging.INFO if context.success else logging.WARNING
        with log_context(values):
            self._logger.log(level, "Public API completion")


class _Span(Protocol):
    def set_attribute(self, key: str, value: object) -> None: ...

    def record_exception(self, exception: BaseException) -> None: ...

    def set_status(self, status: Status) -> None: ...


class _SpanManager(Protocol):
    def __enter__(self) -> _Span: ...

    def __exit__(self, exc_type: object, exc: object, tb: object) -> object: ...


class _Tracer(Protocol):
    def start_as_current_span(self, name: str) -> _SpanManager: ...


class PublicApiTracingConcern:
    """One span per invocation, closed when the matching completion arrives."""

    def __init__(self, *, tracer: _Tracer) -> None:
        self._tracer = tracer
        self._open: dict[int, tuple[_SpanManager, _Span]] = {}
        self._lock = threading.Lock()

    def on_invocation(self, context: InvocationContext) -> None:
        manager = self._tracer.start_as_current_span(context.span_name)
        span = manager.__enter__()
        for key, value in context.log_fields(fields.INVOCATION_EVENT).items():
            if key != fields.EVENT and value is not None and key not in context.references:
                span.set_attribute(key, value)
        for key, value in context.references.items():
            span.set_attribute(f"reference.{key}", value)
        with self._lock:
            self._open[id(context)] = (manager, span)

    def on_completion(self, context: CompletionContext) -> None:
        with self._lock:
            opened = self._open.pop(id(context.invocation), None)
        if opened is None:
            return
        manager, span = opened
        span.set_attribute(fields.OUTCOME, context.outcome)
        span.set_attribute(fields.DURATION_MS, context.duration_ms)
        span.set_attribute("errors.count", len(context.errors))
        if not context.success:
            span.set_status(Status(StatusCode.ERROR))
            if context.errors:
                span.record_exception(
                    RuntimeError("; ".join(context.errors[:_SPAN_ERROR_SAMPLE]))
                )
        manager.__exit__(None, None, None)


class _Counter(Protocol):
    def add(self, amount: int | float, attributes: Mapping[str, str]) -> None: ...


class _Histogram(Protocol):
    def record(self, amount: float, attributes: Mapping[str, str]) -> None: ...


class PublicApiMetricsConcern:
    """Call count and latency per outcome, plus one error count per category."""

    def __init__(
        self,
        *,
        calls: _Counter,
        durations: _Histogram,
        errors: _Counter,
    ) -> None:
        self._calls = calls
        self._duration = durations
        self._errors = errors

    def on_invocation(self, context: InvocationContext) -> None:
        del context

    def on_completion(self, context: CompletionContext) -> None:
        attributes = context.metric_attributes()
        self._calls.add(1, attributes=attributes)
        self._duration.record(context.duration_ms, attributes=attributes)
        if context.success:
            return
        for category in context.error_categories or ["unknown"]:
            self._errors.add(
                1,
                attributes={
                    fields.COMPONENT_ID: context.invocation.component_id,
                    fields.API_NAME: context.invocation.api_name,
                    fields.ERROR_CATEGORY: category,
                },
            )


class _Recorder:
    """Fans invocation and completion events out to concerns for one method."""

    def __init__(
        self,
        *,
        component_id: str,
        api_name: str,
        id_fields: tuple[str, ...],
        concerns: tuple[PublicApiInstrumentationConcern, ...],
        logger: logging.Logger | None,
    ) -> None:
        self._component_id = component_id
        self._api_name = api_name
        self._id_fields = id_fields
        self._concerns = concerns
        self._logger = logger

    def begin(self, kwargs: Mapping[str, Any]) -> InvocationContext:
        meta = kwargs.get("meta")
        invocation = InvocationContext(
            component_id=self._component_id,
            api_name=self._api_name,
            trace_id=_text(getattr(meta, "trace_id", None)),
            envelope_id=_text(getattr(meta, "envelope_id", None)),
            principal=_text(getattr(meta, "principal", None)),
            references={
                name: str(kwargs[name])
                for name in self._id_fields
                if _text(kwargs.get(name)) is not None
            },
        )
        for concern in self._concerns:
            try:
                concern.on_invocation(invocation)
            except Exception as exc:  # noqa: BLE001
                self._concern_failed(concern, "invocation", invocation, exc)
        return invocation

    def returned(self, invocation: InvocationContext, started: float, result: object) -> None:
        if isinstance(result, Envelope):
            errors = [f"{item.code}: {item.message}" for item in result.errors if item.message]
            categories = [item.category.value for item in result.errors]
            success = result.ok
        else:
            errors, categories, success = [], [], True
        self._complete(
            CompletionContext(
                invocation=invocation,
                success=success,
                duration_ms=_elapsed_ms(started),
                errors=errors,
                error_categories=categories,
            )
        )

    def raised(self, invocation: InvocationContext, started: float, exc: Exception) -> None:
        self._complete(
            CompletionContext(
                invocation=invocation,
                success=False,
                duration_ms=_elapsed_ms(started),
                errors=[f"{type(exc).__name__}: {exc}"],
                error_categories=["internal"],
            )
        )

    def _complete(self, completion: CompletionContext) -> None:
        for concern in self._concerns:
            try:
                concern.on_completion(completion)
            except Exception as exc:  # noqa: BLE001
                self._concern_failed(concern, "completion", completion.invocation, exc)

    def _concern_failed(
        self,
        concern: PublicApiInstrumentationConcern,
        stage: str,
        invocation: InvocationContext,
        exc: Exception,
    ) -> None:
        name = type(concern).__name__
        _otel_instruments().concern_failures_total.add(
            1,
            attributes={
                fields.COMPONENT_ID: invocation.component_id,
                fields.API_NAME: invocation.api_name,
                fields.STAGE: stage,
                fields.CONCERN: name,
            },
        )
        if self._logger is None:
            return
        values = invocation.log_fields(fields.CONCERN_FAILURE_EVENT)
        values.update(
            {
                fields.STAGE: stage,
                fields.CONCERN: name,
                fields.ERRORS: f"{type(exc).__name__}: {exc}",
            }
        )
        with log_context(values):
            self._logger.warning("Public API instrumentation concern failed")


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: logging.Logger | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Instrument one public method.

    ``id_fields`` names keyword arguments copied into the invocation as
    references, e.g. ``("unit_id",)``. Envelope results decide success from
    their errors; any other return value counts as success.
    """
    resolved: tuple[PublicApiInstrumentationConcern, ...] = (
        *(concerns or ()),
        _tracing_concern(),
        _metrics_concern(),
    )
    if logger is not None:
        resolved = (PublicApiLoggingConcern(logger=logger), *resolved)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        recorder = _Recorder(
            component_id=component_id,
            api_name=api_name or func.__name__,
            id_fields=id_fields,
            concerns=resolved,
            logger=logger,
        )

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                invocation = recorder.begin(kwargs)
                started = perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    recorder.raised(invocation, started, exc)
                    raise
                recorder.returned(invocation, started, result)
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation = recorder.begin(kwargs)
            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                recorder.raised(invocation, started, exc)
                raise
            recorder.returned(invocation, started, result)
            return result

        return wrapper

    return decorator


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _text(value: object) -> str | None:
    return None if value is None or value == "" else str(value)


@dataclass(frozen=True)
class _OtelInstruments:
    calls_total: _Counter
    duration_ms: _Histogram
    errors_total: _Counter
    concern_failures_total: _Counter


@lru_cache(maxsize=1)
def _otel_instruments() -> _OtelInstruments:
    """Metric instruments, named from ``observability.public_api.otel``."""
    otel = load_settings().observability.public_api.otel
    meter = otel_metrics.get_meter(otel.meter_name)
    return _OtelInstruments(
        calls_total=meter.create_counter(
            name=otel.calls_metric,
            description="Public API calls by component, method and outcome.",
            unit="1",
        ),
        duration_ms=meter.create_histogram(
            name=otel.duration_metric,
            description="Public API call latency.",
            unit="ms",
        ),
        errors_total=meter.create_counter(
            name=otel.errors_metric,
            description="Public API failures by error category.",
            unit="1",
        ),
        concern_failures_total=meter.create_counter(
            name=otel.concern_failures_metric,
            description="Instrumentation concerns that raised.",
            unit="1",
        ),
    )


@lru_cache(maxsize=1)
def _tracing_concern() -> PublicApiTracingConcern:
    otel = load_settings().observability.public_api.otel
    return PublicApiTracingConcern(tracer=otel_trace.get_tracer(otel.tracer_name))


@lru_cache(maxsize=1)
def _metrics_concern() -> PublicApiMetricsConcern:
    instruments = _otel_instruments()
    return PublicApiMetricsConcern(
        calls=instruments.calls_total,
        durations=instruments.duration_ms,
        errors=instruments.errors_total,
    )
