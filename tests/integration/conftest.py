"""Shared fixtures for end-to-end runtime tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from tests.integration.helpers import Harness


@pytest.fixture
def harness() -> Iterator[Harness]:
    built = Harness()
    yield built
    built.runtime.dispose()
