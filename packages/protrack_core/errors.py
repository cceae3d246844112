"""Typed exceptions raised when a runtime call returns a failure envelope."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from packages.protrack_shared.envelope import Envelope
from packages.protrack_shared.errors import ErrorCategory, ErrorDetail

T = TypeVar("T")


@dataclass(frozen=True)
class ProTrackError(Exception):
    """Base error type for unwrapped runtime failures."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ProTrackDomainError(ProTrackError):
    """A call failed with one or more tagged envelope errors."""

    operation: str
    details: tuple[ErrorDetail, ...] = ()

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(item.code for item in self.details)


@dataclass(frozen=True)
class ProTrackValidationError(ProTrackDomainError):
    """Validation-category failure."""


@dataclass(frozen=True)
class ProTrackConflictError(ProTrackDomainError):
    """Conflict-category failure."""


@dataclass(frozen=True)
class ProTrackNotFoundError(ProTrackDomainError):
    """Not-found category failure."""


@dataclass(frozen=True)
class ProTrackPolicyError(ProTrackDomainError):
    """Policy-category failure."""


@dataclass(frozen=True)
class ProTrackDependencyError(ProTrackDomainError):
    """Dependency-category failure; usually safe to retry."""


@dataclass(frozen=True)
class ProTrackInternalError(ProTrackDomainError):
    """Internal-category failure."""


def unwrap(envelope: Envelope[T], *, operation: str) -> T | None:
    """Return the payload of a successful envelope or raise a typed error.

    The error type follows the category of the first reported error.
    """
    raise_for_errors(operation=operation, errors=envelope.errors)
    return envelope.value


def raise_for_errors(*, operation: str, errors: Sequence[ErrorDetail]) -> None:
    """Raise a typed domain error when ``errors`` is non-empty."""
    if len(errors) == 0:
        return
    details = tuple(errors)
    error_type = _CATEGORY_TO_ERROR.get(details[0].category, ProTrackDomainError)
    raise error_type(
        message=f"{operation} failed: {'; '.join(item.message for item in details)}",
        operation=operation,
        details=details,
    )


_CATEGORY_TO_ERROR: dict[ErrorCategory, type[ProTrackDomainError]] = {
    ErrorCategory.VALIDATION: ProTrackValidationError,
    ErrorCategory.CONFLICT: ProTrackConflictError,
    ErrorCategory.NOT_FOUND: ProTrackNotFoundError,
    ErrorCategory.POLICY: ProTrackPolicyError,
    ErrorCategory.DEPENDENCY: ProTrackDependencyError,
    ErrorCategory.INTERNAL: ProTrackInternalError,
}
