"""Tests for shared ULID generation and ordering semantics."""

from __future__ import annotations

from packages.protrack_shared.ids import (
    ULID_LENGTH,
    MonotonicUlidGenerator,
    generate_ulid_str,
    is_ulid_str,
    ulid_timestamp_ms,
)


def test_generated_ulid_is_canonical() -> None:
    value = generate_ulid_str()

    assert len(value) == ULID_LENGTH
    assert is_ulid_str(value) is True


def test_timestamp_is_recoverable() -> None:
    value = generate_ulid_str(timestamp_ms=1_700_000_000_000)

    assert ulid_timestamp_ms(value) == 1_700_000_000_000


def test_ids_minted_in_one_millisecond_stay_strictly_increasing() -> None:
    """Fixed timestamps leave only entropy ordering to compare."""
    generator = MonotonicUlidGenerator()
    values = [generator.new(timestamp_ms=1_700_000_000_000) for _ in range(300)]

    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_clock_regression_does_not_reorder_ids() -> None:
    generator = MonotonicUlidGenerator()
    later = generator.new(timestamp_ms=1_700_000_000_500)
    earlier_clock = generator.new(timestamp_ms=1_700_000_000_000)

    assert earlier_clock > later


def test_is_ulid_str_rejects_malformed_values() -> None:
    assert is_ulid_str("not-a-ulid") is False
    assert is_ulid_str("U" * ULID_LENGTH) is False
    assert is_ulid_str(None) is False
