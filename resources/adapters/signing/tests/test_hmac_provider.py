"""Tests for HMAC capability issuing and authentication."""

from __future__ import annotations

import pytest

from resources.adapters.signing import ActorCapability, HmacSigningProvider


def test_issued_capability_authenticates() -> None:
    provider = HmacSigningProvider(secret="s3cret")
    capability = provider.issue(actor="acme")
    assert capability.actor == "acme"
    assert provider.authenticate(capability) is True


def test_forged_or_foreign_capability_is_rejected() -> None:
    """Tokens from another secret or for another actor should not verify."""
    provider = HmacSigningProvider(secret="s3cret")
    other = HmacSigningProvider(secret="different")

    assert provider.authenticate(other.issue(actor="acme")) is False
    stolen = provider.issue(actor="acme")
    assert provider.authenticate(ActorCapability(actor="mallory", token=stolen.token)) is False


def test_blank_secret_is_rejected() -> None:
    with pytest.raises(ValueError):
        HmacSigningProvider(secret="  ")
