"""Component declaration for the Escrow Engine."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_escrow_engine")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        requires=frozenset(
            {
                ComponentId("adapter_fund_rail"),
                ComponentId("adapter_signing"),
                ComponentId("service_oracle_ingest"),
                ComponentId("service_provenance_store"),
                ComponentId("service_sla_evaluator"),
                ComponentId("service_transaction_ledger"),
                ComponentId("substrate_sql"),
            }
        ),
        module_roots=frozenset({ModuleRoot("services.action.escrow_engine")}),
        public_api_roots=frozenset({ModuleRoot("services.action.escrow_engine.service")}),
        owns_resources=frozenset({ComponentId("adapter_fund_rail")}),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Wire the escrow engine to its rail and upstream services."""
    from services.action.escrow_engine.service import build_escrow_engine_service

    return build_escrow_engine_service(
        settings=settings,
        rail=components["adapter_fund_rail"],
        signing=components["adapter_signing"],
        provenance=components["service_provenance_store"],
        oracle=components["service_oracle_ingest"],
        evaluator=components["service_sla_evaluator"],
        substrate=components["substrate_sql"],
        activity=components["service_transaction_ledger"],
    )
