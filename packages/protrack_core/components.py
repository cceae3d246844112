"""Manifest-driven component construction."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from pathlib import Path

from packages.protrack_shared.component_loader import import_registered_component_modules
from packages.protrack_shared.config import ProTrackSettings
from packages.protrack_shared.logging import get_logger
from packages.protrack_shared.manifest import ComponentManifest, get_registry

_LOGGER = get_logger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]

ComponentBuilder = Callable[..., object]


class ComponentBuildError(RuntimeError):
    """A builder asked for a component its manifest does not require."""


def load_component_manifests(repo_root: Path = REPO_ROOT) -> None:
    """Import every component declaration so the registry is complete."""
    imported = import_registered_component_modules(repo_root=repo_root)
    _LOGGER.debug("component modules imported: count=%d", len(imported))


def resolve_component_builder(manifest: ComponentManifest) -> ComponentBuilder:
    """Return ``build_component`` from the manifest's ``component`` module."""
    for module_root in sorted(manifest.module_roots):
        module = importlib.import_module(f"{module_root}.component")
        builder = getattr(module, "build_component", None)
        if callable(builder):
            return builder
    raise RuntimeError(f"component '{manifest.id}' has no build_component()")


def instantiate_registered_components(
    settings: ProTrackSettings,
    *,
    overrides: Mapping[str, object] | None = None,
) -> dict[str, object]:
    """Build every registered component in dependency order.

    ``overrides`` maps component ids to prebuilt instances; those ids are not
    built, and components requiring them receive the override instead. Each
    builder only sees the components its manifest requires.
    """
    built: dict[str, object] = dict(overrides or {})
    for manifest in get_registry().build_order():
        component_id = str(manifest.id)
        if component_id in built:
            continue
        visible = {str(dep): built[str(dep)] for dep in manifest.requires}
        builder = resolve_component_builder(manifest)
        try:
            built[component_id] = builder(settings=settings, components=visible)
        except KeyError as exc:
            raise ComponentBuildError(
                f"component '{component_id}' looked up {exc} without requiring it"
            ) from exc
        _LOGGER.info("component instantiated: id=%s layer=%d", component_id, manifest.layer)
    return built
