"""Fallback mapping from arbitrary exceptions to ``ErrorDetail``."""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial
from typing import Callable

from . import codes
from .detail import ErrorDetail
from .factories import (
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)

# First matching type wins; TimeoutError must precede the OSError family.
_BY_TYPE: tuple[tuple[type[BaseException], str, Callable[..., ErrorDetail]], ...] = (
    (TimeoutError, "dependency timeout", partial(dependency_error, code=codes.DEPENDENCY_TIMEOUT)),
    (
        ConnectionError,
        "dependency unavailable",
        partial(dependency_error, code=codes.DEPENDENCY_UNAVAILABLE),
    ),
    (PermissionError, "permission denied", partial(policy_error, code=codes.PERMISSION_DENIED)),
    (KeyError, "not found", not_found_error),
    (ValueError, "invalid argument", partial(validation_error, code=codes.INVALID_ARGUMENT)),
)


def exception_to_error(
    exc: Exception, *, metadata: Mapping[str, str] | None = None
) -> ErrorDetail:
    """Map ``exc`` by type; services translate their own exceptions before this.

    ``metadata`` is merged under the recorded ``exception_type``.
    """
    metadata = {**(metadata or {}), "exception_type": type(exc).__name__}
    for exc_type, fallback, build in _BY_TYPE:
        if isinstance(exc, exc_type):
            return build(str(exc) or fallback, metadata=metadata)
    return internal_error(
        str(exc) or "unexpected exception",
        code=codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )
