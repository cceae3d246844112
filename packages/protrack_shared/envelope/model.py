"""The envelope returned by every service public API."""

from __future__ import annotations

from typing import Generic, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from packages.protrack_shared.errors import ErrorDetail

from .meta import EnvelopeMeta

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Metadata plus either a payload, a list of errors, or both.

    An envelope is ``ok`` exactly when it carries no errors; a failed envelope
    may still carry a payload describing partial progress.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    metadata: EnvelopeMeta
    payload: T | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def has_payload(self) -> bool:
        return self.payload is not None

    @property
    def value(self) -> T | None:
        return self.payload

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(detail.code for detail in self.errors)


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    return Envelope[T](metadata=meta, payload=payload)


def failure(
    *,
    meta: EnvelopeMeta,
    errors: Iterable[ErrorDetail],
    payload: T | None = None,
) -> Envelope[T]:
    return Envelope[T](metadata=meta, payload=payload, errors=list(errors))


def empty(*, meta: EnvelopeMeta) -> Envelope[None]:
    return Envelope[None](metadata=meta)
