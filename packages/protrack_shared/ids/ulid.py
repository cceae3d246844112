"""ULID generation and validation helpers.

Identifiers are canonical 26-character Crockford Base32 strings: 48 bits of
millisecond timestamp followed by 80 bits of entropy. Within one process,
ids minted in the same millisecond stay strictly increasing.
"""

from __future__ import annotations

import secrets
import threading
import time

ULID_LENGTH = 26

_ULID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_DECODE_TABLE = {char: index for index, char in enumerate(_ULID_ALPHABET)}
_MAX_ULID_INT = (1 << 128) - 1
_MAX_ENTROPY = (1 << 80) - 1


class MonotonicUlidGenerator:
    """Thread-safe ULID source that never repeats or reorders within a process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_entropy = 0

    def new(self, *, timestamp_ms: int | None = None) -> str:
        """Return one new ULID string."""
        ts_ms = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
        if ts_ms < 0 or ts_ms >= (1 << 48):
            raise ValueError("timestamp_ms out of ULID 48-bit range")

        with self._lock:
            if ts_ms <= self._last_ms:
                ts_ms = self._last_ms
                entropy = self._last_entropy + 1
                if entropy > _MAX_ENTROPY:
                    ts_ms += 1
                    entropy = _random_entropy()
            else:
                entropy = _random_entropy()
            self._last_ms = ts_ms
            self._last_entropy = entropy

        return _encode((ts_ms << 80) | entropy)


_DEFAULT_GENERATOR = MonotonicUlidGenerator()


def generate_ulid_str(*, timestamp_ms: int | None = None) -> str:
    """Generate a new ULID in canonical 26-char string format."""
    return _DEFAULT_GENERATOR.new(timestamp_ms=timestamp_ms)


def is_ulid_str(value: object) -> bool:
    """Return ``True`` when ``value`` is a canonical ULID string."""
    if not isinstance(value, str) or len(value) != ULID_LENGTH:
        return False
    try:
        return _decode(value) <= _MAX_ULID_INT
    except ValueError:
        return False


def ulid_timestamp_ms(value: str) -> int:
    """Return the millisecond timestamp embedded in a ULID string."""
    return _decode(value) >> 80


def _random_entropy() -> int:
    return int.from_bytes(secrets.token_bytes(10), byteorder="big", signed=False)


def _encode(number: int) -> str:
    chars: list[str] = []
    for _ in range(ULID_LENGTH):
        number, remainder = divmod(number, 32)
        chars.append(_ULID_ALPHABET[remainder])
    return "".join(reversed(chars))


def _decode(value: str) -> int:
    number = 0
    for char in value.upper():
        if char not in _DECODE_TABLE:
            raise ValueError(f"Invalid ULID character: {char!r}")
        number = (number << 5) | _DECODE_TABLE[char]
    return number
