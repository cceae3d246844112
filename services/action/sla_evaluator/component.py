"""Component declaration for the SLA Evaluator."""

from __future__ import annotations

from collections.abc import Mapping

from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_sla_evaluator")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        module_roots=frozenset({ModuleRoot("services.action.sla_evaluator")}),
        public_api_roots=frozenset({ModuleRoot("services.action.sla_evaluator.service")}),
    )
)


def build_component(
    *, settings: ProTrackSettings, components: Mapping[str, object]
) -> object:
    """Build the stateless SLA evaluator."""
    del components
    from services.action.sla_evaluator.service import build_sla_evaluator_service

    return build_sla_evaluator_service(settings=settings)
