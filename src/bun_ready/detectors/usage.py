"""Dependency usage across a package's source files."""

from __future__ import annotations

from pathlib import Path

from bun_ready.detectors.builtins import is_node_builtin_import
from bun_ready.detectors.imports import parse_imports
from bun_ready.detectors.sources import find_source_files, read_source
from bun_ready.models import PackageUsage


def package_name_of(specifier: str) -> str | None:
    """``lodash/fp`` -> ``lodash``, ``@scope/pkg/x`` -> ``@scope/pkg``.

    Relative, absolute and Node built-in specifiers have no package name.
    """
    if specifier.startswith((".", "/")) or is_node_builtin_import(specifier):
        return None
    parts = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(parts[:2]) if len(parts) >= 2 else None
    return parts[0] or None


def collect_package_usage(root: Path, dependencies: dict[str, str]) -> PackageUsage:
    """Map each declared dependency to the files that import it."""
    files_by_package: dict[str, set[str]] = {}
    analyzed = 0
    for path in find_source_files(root):
        content = read_source(path)
        if content is None:
            continue
        analyzed += 1
        rel = path.relative_to(root).as_posix()
        for imp in parse_imports(content):
            name = package_name_of(imp.module)
            if name is not None and name in dependencies:
                files_by_package.setdefault(name, set()).add(rel)

    return PackageUsage(
        analyzed_files=analyzed,
        files_by_package={name: sorted(files) for name, files in sorted(files_by_package.items())},
    )
