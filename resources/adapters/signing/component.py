"""Component declaration for the signing provider."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("adapter_signing")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        layer=0,
        system="state",
        kind="adapter",
        module_roots=frozenset({ModuleRoot("resources.adapters.signing")}),
        owner_service_id=None,
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the HMAC signing provider from ``adapter.signing.secret``."""
    del components
    from resources.adapters.signing.config import resolve_signing_settings
    from resources.adapters.signing.hmac_provider import HmacSigningProvider

    return HmacSigningProvider(secret=resolve_signing_settings(settings).secret)
