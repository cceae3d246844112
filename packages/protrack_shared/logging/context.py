"""Task-local structured logging context.

Fields bound here ride along on every record emitted from the same thread or
asyncio task until the surrounding scope exits.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Iterator, Mapping

_EMPTY: Mapping[str, str] = MappingProxyType({})
_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("protrack_log_context", default=_EMPTY)


def _merged(base: Mapping[str, str], values: Mapping[str, object]) -> Mapping[str, str]:
    merged = dict(base)
    merged.update({str(key): str(value) for key, value in values.items() if value is not None})
    return MappingProxyType(merged)


def get_context() -> dict[str, str]:
    """Return the fields bound in the current scope."""
    return dict(_CONTEXT.get())


def bind_context(**values: object) -> None:
    """Bind ``values`` for the rest of the current scope; ``None`` is skipped."""
    if values:
        _CONTEXT.set(_merged(_CONTEXT.get(), values))


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` only while the block runs."""
    token = _CONTEXT.set(_merged(_CONTEXT.get(), values))
    try:
        yield
    finally:
        _CONTEXT.reset(token)
