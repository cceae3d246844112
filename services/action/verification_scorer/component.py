"""Component declaration for the Verification Scorer."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_verification_scorer")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        requires=frozenset(
            {
                ComponentId("service_escrow_engine"),
                ComponentId("service_provenance_store"),
            }
        ),
        module_roots=frozenset({ModuleRoot("services.action.verification_scorer")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.action.verification_scorer.service")}
        ),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the scorer over provenance and escrow history."""
    from services.action.verification_scorer.service import (
        build_verification_scorer_service,
    )

    return build_verification_scorer_service(
        settings=settings,
        provenance=components["service_provenance_store"],
        escrow=components["service_escrow_engine"],
    )
