"""Signing provider exports."""

from resources.adapters.signing.adapter import ActorCapability, SigningProvider
from resources.adapters.signing.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.adapters.signing.config import SigningSettings
from resources.adapters.signing.hmac_provider import HmacSigningProvider

__all__ = [
    "ActorCapability",
    "HmacSigningProvider",
    "MANIFEST",
    "RESOURCE_COMPONENT_ID",
    "SigningProvider",
    "SigningSettings",
]
