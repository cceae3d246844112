"""Component declaration for the ledger anchoring adapter."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("adapter_ledger")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        layer=0,
        system="state",
        kind="adapter",
        requires=frozenset({ComponentId("substrate_sql")}),
        module_roots=frozenset({ModuleRoot("resources.adapters.ledger")}),
        owner_service_id=None,
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the ledger adapter selected by ``adapter.ledger.backend``."""
    from resources.adapters.ledger.config import resolve_ledger_adapter_settings
    from resources.adapters.ledger.memory_ledger import InMemoryLedgerAdapter
    from resources.adapters.ledger.sql_ledger import SqlLedgerAdapter

    adapter_settings = resolve_ledger_adapter_settings(settings)
    if adapter_settings.backend == "memory":
        return InMemoryLedgerAdapter(
            confirm_delay_seconds=adapter_settings.confirm_delay_seconds
        )
    return SqlLedgerAdapter(substrate=components["substrate_sql"])
