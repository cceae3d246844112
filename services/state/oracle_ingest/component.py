"""Component declaration for the OracleIngest service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_oracle_ingest")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="state",
        requires=frozenset(
            {
                ComponentId("adapter_ledger"),
                ComponentId("service_transaction_ledger"),
                ComponentId("substrate_sql"),
            }
        ),
        module_roots=frozenset({ModuleRoot("services.state.oracle_ingest")}),
        public_api_roots=frozenset({ModuleRoot("services.state.oracle_ingest.service")}),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build Oracle Ingest on the configured sample store."""
    from services.state.oracle_ingest.service import build_oracle_ingest_service

    return build_oracle_ingest_service(
        settings=settings,
        ledger=components["adapter_ledger"],
        substrate=components["substrate_sql"],
        activity=components["service_transaction_ledger"],
    )
