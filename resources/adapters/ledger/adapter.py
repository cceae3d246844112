"""Ledger anchoring adapter protocol, errors and hashing helpers."""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from datetime import datetime
from typing import Mapping, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

GENESIS_REF = "0" * 64


class LedgerAdapterError(Exception):
    """Base exception for ledger adapter failures."""


class LedgerUnavailableError(LedgerAdapterError, ConnectionError):
    """The ledger could not be reached; the caller may retry."""


class LedgerHealthResult(BaseModel):
    """Readiness payload for the ledger adapter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    adapter_ready: bool
    detail: str


@runtime_checkable
class LedgerAdapter(Protocol):
    """Append-only, tamper-evident anchoring for provenance commitments."""

    async def commit(self, *, payload: Mapping[str, object]) -> str:
        """Anchor ``payload`` and return its proof reference."""

    async def confirm(self, *, proof_ref: str) -> bool:
        """Return whether ``proof_ref`` is a confirmed ledger entry."""

    def health(self) -> LedgerHealthResult:
        """Return adapter health state."""


def canonical_payload(payload: Mapping[str, object]) -> str:
    """Serialize ``payload`` deterministically for hashing and storage."""
    return json.dumps(
        payload, sort_keys=True, separators=(",", ":"), default=_json_default
    )


def chain_ref(previous_ref: str, body: str) -> str:
    """Return the SHA-256 hex digest linking ``body`` to ``previous_ref``."""
    digest = hashlib.sha256()
    digest.update(previous_ref.encode("ascii"))
    digest.update(body.encode("utf-8"))
    return digest.hexdigest()


def _json_default(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"unsupported ledger payload value: {type(value).__name__}")
