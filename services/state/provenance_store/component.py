"""Component declaration for the Provenance Store."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_provenance_store")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="state",
        requires=frozenset(
            {
                ComponentId("adapter_ledger"),
                ComponentId("adapter_signing"),
                ComponentId("service_transaction_ledger"),
                ComponentId("substrate_sql"),
            }
        ),
        module_roots=frozenset({ModuleRoot("services.state.provenance_store")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.state.provenance_store.service")}
        ),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the Provenance Store on the configured unit store."""
    from services.state.provenance_store.service import build_provenance_store_service

    return build_provenance_store_service(
        settings=settings,
        ledger=components["adapter_ledger"],
        signing=components["adapter_signing"],
        substrate=components["substrate_sql"],
        activity=components["service_transaction_ledger"],
    )
