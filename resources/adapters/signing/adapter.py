"""Signing/identity provider protocol and capability model."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class ActorCapability(BaseModel):
    """Proof that the bearer acts as ``actor``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    actor: str = Field(min_length=1)
    token: str = Field(min_length=1)


@runtime_checkable
class SigningProvider(Protocol):
    """Issues and authenticates actor capabilities."""

    def issue(self, *, actor: str) -> ActorCapability:
        """Return a capability for ``actor``."""

    def authenticate(self, capability: ActorCapability) -> bool:
        """Return whether ``capability`` was issued by this provider."""
