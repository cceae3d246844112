"""Component declaration for the fund-transfer rail."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("adapter_fund_rail")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        layer=0,
        system="action",
        kind="adapter",
        requires=frozenset({ComponentId("substrate_sql")}),
        module_roots=frozenset({ModuleRoot("resources.adapters.fund_rail")}),
        owner_service_id=ComponentId("service_escrow_engine"),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the fund rail selected by ``adapter.fund_rail.backend``."""
    from resources.adapters.fund_rail.config import resolve_fund_rail_settings
    from resources.adapters.fund_rail.memory_rail import InMemoryFundTransferRail
    from resources.adapters.fund_rail.sql_rail import SqlFundTransferRail

    if resolve_fund_rail_settings(settings).backend == "memory":
        return InMemoryFundTransferRail()
    return SqlFundTransferRail(substrate=components["substrate_sql"])
