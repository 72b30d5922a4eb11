"""Monorepo workspace package discovery."""

from __future__ import annotations

import fnmatch
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from bun_ready.baseline import ROOT_PACKAGE

logger = logging.getLogger("bun_ready.workspaces")


@dataclass(frozen=True)
class WorkspacePackage:
    name: str
    path: Path


def read_package_json(path: Path) -> dict | None:
    """Parsed package.json, or None when it is missing or not a JSON object."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def workspace_patterns(pkg: dict) -> list[str]:
    """Patterns from ``workspaces`` (array or ``{packages: [...]}``) or ``packages``."""
    config = pkg.get("workspaces") or pkg.get("packages")
    if isinstance(config, dict):
        config = config.get("packages")
    if not isinstance(config, list):
        return []
    return [p for p in config if isinstance(p, str)]


def _expand(root: Path, pattern: str) -> list[Path]:
    pattern = pattern.strip().rstrip("/")
    if pattern.startswith("!"):
        return []
    if "*" not in pattern:
        candidate = root / pattern
        return [candidate] if candidate.is_dir() else []
    if "**" in pattern:
        base, _, rest = pattern.partition("**")
        base_dir = root / base.rstrip("/")
        if not base_dir.is_dir():
            return []
        name_pattern = rest.strip("/") or "*"
        return sorted(
            p.parent for p in base_dir.rglob("package.json")
            if "node_modules" not in p.parts and fnmatch.fnmatch(p.parent.name, name_pattern)
        )
    parent, _, name_pattern = pattern.rpartition("/")
    base_dir = root / parent if parent else root
    if not base_dir.is_dir():
        return []
    return sorted(
        d for d in base_dir.iterdir()
        if d.is_dir() and fnmatch.fnmatch(d.name, name_pattern)
    )


def discover_workspaces(root: Path) -> list[WorkspacePackage]:
    """Named workspace packages of ``root``, sorted by name."""
    root_pkg = read_package_json(root / "package.json")
    if root_pkg is None:
        return []

    seen: set[Path] = set()
    packages: list[WorkspacePackage] = []
    for pattern in workspace_patterns(root_pkg):
        for pkg_dir in _expand(root, pattern):
            pkg_dir = pkg_dir.resolve()
            if pkg_dir in seen or pkg_dir == root.resolve():
                continue
            pkg = read_package_json(pkg_dir / "package.json")
            if pkg is None or not isinstance(pkg.get("name"), str):
                continue
            seen.add(pkg_dir)
            if pkg["name"] == ROOT_PACKAGE:
                logger.warning(
                    "Workspace package at %s is named %r; its baseline entries "
                    "share keys with root findings",
                    pkg_dir, ROOT_PACKAGE,
                )
            packages.append(WorkspacePackage(name=pkg["name"], path=pkg_dir))

    return sorted(packages, key=lambda p: p.name)
