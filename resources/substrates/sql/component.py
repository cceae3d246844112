"""Component declaration for the shared SQL substrate."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("substrate_sql")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        layer=0,
        system="state",
        kind="substrate",
        module_roots=frozenset({ModuleRoot("resources.substrates.sql")}),
        owner_service_id=None,
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Open the shared SQL engine."""
    del components
    from resources.substrates.sql.config import resolve_sql_settings
    from resources.substrates.sql.substrate import SharedSqlSubstrate

    return SharedSqlSubstrate(settings=resolve_sql_settings(settings))
