"""SQLAlchemy helpers for ULID-keyed tables."""

from __future__ import annotations

from sqlalchemy import Column, String

from .ulid import ULID_LENGTH


def ulid_primary_key_column(name: str = "id") -> Column[str]:
    """Return a standard ULID primary-key column stored as its string form."""
    return Column(name, String(ULID_LENGTH), primary_key=True, nullable=False)


def ulid_column(name: str, *, nullable: bool = False, index: bool = False) -> Column[str]:
    """Return a non-key ULID reference column."""
    return Column(name, String(ULID_LENGTH), nullable=nullable, index=index)
