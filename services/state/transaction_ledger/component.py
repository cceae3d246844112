"""Component declaration for the Transaction Ledger activity mirror."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_transaction_ledger")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="state",
        module_roots=frozenset({ModuleRoot("services.state.transaction_ledger")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.state.transaction_ledger.service")}
        ),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the activity feed."""
    del components
    from services.state.transaction_ledger.service import build_transaction_ledger_service

    return build_transaction_ledger_service(settings=settings)
