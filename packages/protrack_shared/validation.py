"""Request validation shared by service public APIs."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from packages.protrack_shared.envelope import EnvelopeMeta, validate_meta
from packages.protrack_shared.errors import ErrorDetail, codes, validation_error

TRequest = TypeVar("TRequest", bound=BaseModel)


def validate_request(
    *,
    meta: EnvelopeMeta,
    model: type[TRequest],
    payload: dict[str, Any],
) -> tuple[TRequest | None, list[ErrorDetail]]:
    """Validate metadata and request payload with stable error messages.

    Only the first pydantic issue is reported, as ``<field>: <message>``.
    """
    try:
        validate_meta(meta)
    except ValueError as exc:
        return None, [validation_error(str(exc), code=codes.INVALID_ARGUMENT)]

    try:
        validated = model.model_validate(payload)
    except ValidationError as exc:
        issue = exc.errors()[0]
        field = ".".join(str(item) for item in issue.get("loc", ()))
        message = f"{field or 'payload'}: {issue.get('msg', 'invalid value')}"
        return None, [validation_error(message, code=codes.INVALID_ARGUMENT)]

    return validated, []
