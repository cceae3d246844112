"""Shared ULID primitives for identifier standardization."""

from packages.protrack_shared.ids.sqlalchemy import ulid_column, ulid_primary_key_column
from packages.protrack_shared.ids.ulid import (
    ULID_LENGTH,
    MonotonicUlidGenerator,
    generate_ulid_str,
    is_ulid_str,
    ulid_timestamp_ms,
)

__all__ = [
    "ULID_LENGTH",
    "MonotonicUlidGenerator",
    "generate_ulid_str",
    "is_ulid_str",
    "ulid_column",
    "ulid_primary_key_column",
    "ulid_timestamp_ms",
]
