"""Constructors for ``ErrorDetail`` values, generic and domain-specific."""

from __future__ import annotations

from typing import Mapping

from . import codes
from .detail import ErrorCategory, ErrorDetail

Metadata = Mapping[str, str] | None


def _detail(
    category: ErrorCategory,
    code: str,
    message: str,
    metadata: Metadata,
    *,
    retryable: bool = False,
) -> ErrorDetail:
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata=dict(metadata or {}),
    )


def validation_error(
    message: str, *, code: str = codes.VALIDATION_ERROR, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.VALIDATION, code, message, metadata)


def not_found_error(
    message: str, *, code: str = codes.NOT_FOUND, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.NOT_FOUND, code, message, metadata)


def conflict_error(
    message: str, *, code: str = codes.CONFLICT, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.CONFLICT, code, message, metadata)


def policy_error(
    message: str, *, code: str = codes.POLICY_VIOLATION, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.POLICY, code, message, metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Metadata = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.DEPENDENCY, code, message, metadata, retryable=retryable)


def internal_error(
    message: str, *, code: str = codes.INTERNAL_ERROR, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.INTERNAL, code, message, metadata)


# Supply-chain taxonomy


def unknown_unit_error(unit_id: str) -> ErrorDetail:
    return not_found_error(
        f"unit not found: {unit_id}", code=codes.UNKNOWN_UNIT, metadata={"unit_id": unit_id}
    )


def unknown_escrow_error(escrow_id: str) -> ErrorDetail:
    return not_found_error(
        f"escrow not found: {escrow_id}",
        code=codes.UNKNOWN_ESCROW,
        metadata={"escrow_id": escrow_id},
    )


def stale_actor_error(message: str, *, actor: str) -> ErrorDetail:
    """The caller holds no valid capability for the unit it is touching."""
    return policy_error(message, code=codes.STALE_ACTOR, metadata={"actor": actor})


def sample_rejected_error(message: str, *, source_key: str) -> ErrorDetail:
    return validation_error(
        message, code=codes.SAMPLE_REJECTED, metadata={"source_key": source_key}
    )


def ledger_unavailable_error(
    operation: str, *, exc: BaseException | None = None, resource: str = "ledger"
) -> ErrorDetail:
    """A ledger, oracle or payment rail call failed before any state changed."""
    metadata = {"operation": operation, "resource": resource}
    if exc is not None:
        metadata["exception_type"] = type(exc).__name__
    return dependency_error(
        f"{operation} failed: {resource} unavailable",
        code=codes.LEDGER_UNAVAILABLE,
        metadata=metadata,
    )
