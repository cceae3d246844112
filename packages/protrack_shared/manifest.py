"""Component manifests and the process-local registry.

Each resource and service module declares one manifest at import time. A
manifest names the component, where its code lives and which other components
it needs at build time; the registry turns those declarations into a
deterministic build order and validates resource ownership.
"""

from __future__ import annotations

import heapq
import re
from dataclasses import dataclass, field
from threading import RLock
from typing import Final, FrozenSet, Literal, NewType, Optional

ComponentId = NewType("ComponentId", str)
ModuleRoot = NewType("ModuleRoot", str)

Layer = Literal[0, 1]
System = Literal["state", "action"]
ResourceKind = Literal["substrate", "adapter"]

_SYSTEM_RANK: Final[dict[str, int]] = {"state": 0, "action": 1}
_ID_PATTERN: Final = re.compile(r"^[a-z][a-z0-9_]{1,62}$")
_ROOT_PATTERN: Final = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$")


class ManifestError(ValueError):
    """A manifest or the registry as a whole is inconsistent."""


@dataclass(frozen=True, slots=True, kw_only=True)
class ComponentManifest:
    id: ComponentId
    layer: Layer
    system: System
    module_roots: FrozenSet[ModuleRoot]
    requires: FrozenSet[ComponentId] = frozenset()

    def __post_init__(self) -> None:
        validate_component_id(self.id)
        if not self.module_roots:
            raise ManifestError(f"{self.id}: module_roots must not be empty")
        for root in self.module_roots:
            validate_module_root(root)
        for dependency in self.requires:
            validate_component_id(dependency)
        if self.id in self.requires:
            raise ManifestError(f"{self.id}: component cannot require itself")

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.layer, _SYSTEM_RANK[self.system], str(self.id))


@dataclass(frozen=True, slots=True, kw_only=True)
class ResourceManifest(ComponentManifest):
    """A substrate or adapter; ``owner_service_id`` pins it to one service."""

    layer: Literal[0]
    kind: ResourceKind
    owner_service_id: Optional[ComponentId] = None

    def __post_init__(self) -> None:
        super(ResourceManifest, self).__post_init__()
        if self.owner_service_id is not None:
            validate_component_id(self.owner_service_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class ServiceManifest(ComponentManifest):
    """A service exposing its contract from ``public_api_roots``."""

    layer: Literal[1]
    public_api_roots: FrozenSet[ModuleRoot]
    owns_resources: Optional[FrozenSet[ComponentId]] = None

    def __post_init__(self) -> None:
        super(ServiceManifest, self).__post_init__()
        if not self.public_api_roots:
            raise ManifestError(f"{self.id}: public_api_roots must not be empty")
        for root in self.public_api_roots:
            validate_module_root(root)


@dataclass(slots=True)
class ManifestRegistry:
    _components: dict[ComponentId, ComponentManifest] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def register_component(self, manifest: ComponentManifest) -> None:
        """Add ``manifest``; re-registering an identical manifest is a no-op."""
        with self._lock:
            existing = self._components.get(manifest.id)
            if existing is not None and existing != manifest:
                raise ManifestError(
                    f"duplicate component id with mismatched definition: {manifest.id}"
                )
            self._components[manifest.id] = manifest
            self._check_ownership(strict=False)

    def get_component(self, component_id: ComponentId) -> ComponentManifest:
        try:
            return self._components[component_id]
        except KeyError as exc:
            raise ManifestError(f"component not registered: {component_id}") from exc

    def list_resources(self) -> tuple[ResourceManifest, ...]:
        """Resources ordered by id."""
        found = [item for item in self._snapshot() if isinstance(item, ResourceManifest)]
        return tuple(sorted(found, key=lambda item: str(item.id)))

    def list_services(self) -> tuple[ServiceManifest, ...]:
        """Services ordered state-first, then by id."""
        found = [item for item in self._snapshot() if isinstance(item, ServiceManifest)]
        return tuple(sorted(found, key=lambda item: item.sort_key))

    def build_order(self) -> tuple[ComponentManifest, ...]:
        """Every component after everything it requires.

        Among components whose requirements are met, lower layers come first,
        then state before action, then id order.
        """
        with self._lock:
            manifests = dict(self._components)
        self._check_requirements(manifests)

        waiting = {cid: set(item.requires) for cid, item in manifests.items()}
        dependents: dict[ComponentId, list[ComponentId]] = {cid: [] for cid in manifests}
        for cid, needs in waiting.items():
            for dependency in needs:
                dependents[dependency].append(cid)

        ready = [manifests[cid].sort_key for cid, needs in waiting.items() if not needs]
        heapq.heapify(ready)
        ordered: list[ComponentManifest] = []
        while ready:
            cid = ComponentId(heapq.heappop(ready)[2])
            ordered.append(manifests[cid])
            for dependent in dependents[cid]:
                waiting[dependent].discard(cid)
                if not waiting[dependent]:
                    heapq.heappush(ready, manifests[dependent].sort_key)

        if len(ordered) != len(manifests):
            cycle = sorted(str(cid) for cid, needs in waiting.items() if needs)
            raise ManifestError(f"component requirements form a cycle: {', '.join(cycle)}")
        return tuple(ordered)

    def assert_valid(self) -> None:
        """Check ownership and requirements strictly; raise on the first problem."""
        with self._lock:
            self._check_ownership(strict=True)
        self.build_order()

    def _snapshot(self) -> list[ComponentManifest]:
        with self._lock:
            return list(self._components.values())

    @staticmethod
    def _check_requirements(manifests: dict[ComponentId, ComponentManifest]) -> None:
        for cid in sorted(manifests):
            missing = sorted(str(item) for item in manifests[cid].requires.difference(manifests))
            if missing:
                raise ManifestError(
                    f"component '{cid}' requires unknown component(s): {', '.join(missing)}"
                )

    def _check_ownership(self, *, strict: bool) -> None:
        services = self.list_services()
        claimed: dict[ComponentId, ComponentId] = {}
        for service in services:
            for resource_id in service.owns_resources or ():
                previous = claimed.setdefault(resource_id, service.id)
                if previous != service.id:
                    raise ManifestError(
                        f"resource '{resource_id}' has multiple owners: {previous} and {service.id}"
                    )

        service_ids = {service.id for service in services}
        for resource in self.list_resources():
            owner = resource.owner_service_id
            if owner is None:
                continue
            if owner not in service_ids:
                if strict:
                    raise ManifestError(
                        f"resource '{resource.id}' references unknown owner service '{owner}'"
                    )
                continue
            declared = claimed.get(resource.id)
            if declared is not None and declared != owner:
                raise ManifestError(
                    f"resource '{resource.id}' owner mismatch: declared owner is "
                    f"'{declared}', resource manifest owner is '{owner}'"
                )


def validate_component_id(value: ComponentId) -> None:
    if not _ID_PATTERN.fullmatch(str(value)):
        raise ManifestError(
            f"invalid component id '{value}'; expected ^[a-z][a-z0-9_]{{1,62}}$"
        )


def validate_module_root(value: ModuleRoot) -> None:
    if not _ROOT_PATTERN.fullmatch(str(value)):
        raise ManifestError(f"invalid module root '{value}'")


_REGISTRY = ManifestRegistry()


def register_component(manifest: ComponentManifest) -> ComponentManifest:
    """Register ``manifest`` in the process registry and return it."""
    _REGISTRY.register_component(manifest)
    return manifest


def get_registry() -> ManifestRegistry:
    return _REGISTRY
