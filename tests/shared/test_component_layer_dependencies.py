"""Static checks that component imports only point sideways or downward.

Resources sit below services, and state services sit below action services.
An import that climbs from a lower tier into a higher one is rejected.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[2]

# Lower number means lower tier; a module may import its own tier or below.
_TIERS: tuple[tuple[str, int], ...] = (
    ("packages.protrack_shared", 0),
    ("resources", 1),
    ("services.state", 2),
    ("services.action", 3),
    ("packages.protrack_core", 4),
    ("actors", 5),
)


@dataclass(frozen=True)
class _Violation:
    file_path: Path
    line: int
    message: str

    def format(self) -> str:
        return f"{self.file_path}:{self.line}: {self.message}"


def test_components_do_not_import_higher_tiers() -> None:
    violations: list[_Violation] = []
    for file_path in _runtime_files():
        caller = _module_name(file_path)
        caller_tier = _tier_of(caller)
        if caller_tier is None:
            continue
        tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
        for target, line in _imports(tree):
            target_tier = _tier_of(target)
            if target_tier is not None and target_tier > caller_tier:
                violations.append(
                    _Violation(
                        file_path=file_path.relative_to(_REPO_ROOT),
                        line=line,
                        message=f"{caller} imports higher-tier module {target}",
                    )
                )

    assert not violations, "\n".join(item.format() for item in violations)


def test_tier_lookup_prefers_longest_prefix() -> None:
    assert _tier_of("services.state.oracle_ingest.domain") == 2
    assert _tier_of("services.action.escrow_engine") == 3
    assert _tier_of("packages.protrack_core.runtime") == 4
    assert _tier_of("typer") is None


def _runtime_files() -> list[Path]:
    files: list[Path] = []
    for root in ("packages", "resources", "services", "actors"):
        for path in sorted((_REPO_ROOT / root).rglob("*.py")):
            parts = path.relative_to(_REPO_ROOT).parts
            if "tests" in parts or "__pycache__" in parts:
                continue
            files.append(path)
    return files


def _module_name(file_path: Path) -> str:
    parts = list(file_path.relative_to(_REPO_ROOT).with_suffix("").parts)
    if parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def _tier_of(module_name: str) -> int | None:
    matches = [
        (len(prefix), tier)
        for prefix, tier in _TIERS
        if module_name == prefix or module_name.startswith(f"{prefix}.")
    ]
    return max(matches)[1] if matches else None


def _imports(tree: ast.AST) -> list[tuple[str, int]]:
    found: list[tuple[str, int]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            found.extend((alias.name, node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            found.append((node.module, node.lineno))
    return found
