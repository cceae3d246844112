"""Find and import the ``component.py`` modules that declare manifests.

A module counts as a declaration when it binds ``MANIFEST`` to the result of a
``register_component(...)`` call at module level. Test directories and hidden
directories are never searched.
"""

from __future__ import annotations

import ast
import importlib
from pathlib import Path
from typing import Iterator

COMPONENT_TREES = ("resources", "services")
_IGNORED_DIRS = frozenset({"tests", "__pycache__"})


def _candidate_files(repo_root: Path) -> Iterator[Path]:
    for tree in COMPONENT_TREES:
        base = repo_root / tree
        if not base.is_dir():
            continue
        for path in sorted(base.rglob("component.py")):
            relative = path.relative_to(repo_root).parts
            if _IGNORED_DIRS.isdisjoint(relative) and not any(
                part.startswith(".") for part in relative
            ):
                yield path


def _registers_manifest(path: Path) -> bool:
    module = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    for node in module.body:
        if not isinstance(node, (ast.Assign, ast.AnnAssign)):
            continue
        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
        names = {target.id for target in targets if isinstance(target, ast.Name)}
        call = node.value
        if (
            "MANIFEST" in names
            and isinstance(call, ast.Call)
            and isinstance(call.func, ast.Name)
            and call.func.id == "register_component"
        ):
            return True
    return False


def discover_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    """Dotted module paths of every manifest declaration under ``repo_root``."""
    root = (repo_root or Path.cwd()).resolve()
    return tuple(
        ".".join(path.relative_to(root).with_suffix("").parts)
        for path in _candidate_files(root)
        if _registers_manifest(path)
    )


def import_registered_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    """Import every declaration so its manifest lands in the registry."""
    modules = discover_component_modules(repo_root)
    for name in modules:
        importlib.import_module(name)
    return modules
