"""Error values and error codes shared by every service."""

from . import codes
from .detail import ErrorCategory, ErrorDetail
from .factories import (
    conflict_error,
    dependency_error,
    internal_error,
    ledger_unavailable_error,
    not_found_error,
    policy_error,
    sample_rejected_error,
    stale_actor_error,
    unknown_escrow_error,
    unknown_unit_error,
    validation_error,
)
from .normalize import exception_to_error

__all__ = [
    "ErrorCategory",
    "ErrorDetail",
    "codes",
    "conflict_error",
    "dependency_error",
    "exception_to_error",
    "internal_error",
    "ledger_unavailable_error",
    "not_found_error",
    "policy_error",
    "sample_rejected_error",
    "stale_actor_error",
    "unknown_escrow_error",
    "unknown_unit_error",
    "validation_error",
]
