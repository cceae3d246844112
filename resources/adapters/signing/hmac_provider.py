"""HMAC-SHA256 capability issuer."""

from __future__ import annotations

import hashlib
import hmac

from resources.adapters.signing.adapter import ActorCapability, SigningProvider


class HmacSigningProvider(SigningProvider):
    """Capabilities whose token is an HMAC of the actor id under a shared secret."""

    def __init__(self, *, secret: str) -> None:
        if secret.strip() == "":
            raise ValueError("secret must be non-empty")
        self._secret = secret.encode("utf-8")

    def issue(self, *, actor: str) -> ActorCapability:
        return ActorCapability(actor=actor, token=self._sign(actor))

    def authenticate(self, capability: ActorCapability) -> bool:
        return hmac.compare_digest(self._sign(capability.actor), capability.token)

    def _sign(self, actor: str) -> str:
        return hmac.new(self._secret, actor.encode("utf-8"), hashlib.sha256).hexdigest()
