"""Node.js built-in API usage, graded by Bun compatibility."""

from __future__ import annotations

from dataclasses import dataclass, field

from bun_ready.detectors.base import DetectorContext
from bun_ready.detectors.builtins import get_node_module, is_node_builtin_import, module_category
from bun_ready.detectors.imports import parse_imports
from bun_ready.detectors.sources import find_source_files, read_source
from bun_ready.models import Finding, Severity, max_severity

MAX_LOCATIONS = 3


@dataclass
class ModuleUsage:
    module: str
    category: Severity
    locations: list[str] = field(default_factory=list)


def collect_node_usage(ctx: DetectorContext) -> dict[str, ModuleUsage]:
    usage: dict[str, ModuleUsage] = {}
    for path in find_source_files(ctx.root):
        content = read_source(path)
        if content is None:
            continue
        rel = path.relative_to(ctx.root).as_posix()
        for imp in parse_imports(content):
            if not is_node_builtin_import(imp.module):
                continue
            entry = usage.setdefault(
                imp.module, ModuleUsage(imp.module, module_category(imp.module))
            )
            entry.locations.append(f"{rel}:{imp.line}")
    return usage


class NodeApiDetector:
    name = "api"

    def detect(self, ctx: DetectorContext) -> list[Finding]:
        usage = collect_node_usage(ctx)
        if not usage:
            return []

        findings = [self._builtins_finding(usage)]
        unprefixed = sorted(m for m in usage if not m.startswith("node:"))
        if unprefixed:
            findings.append(self._prefix_finding(unprefixed, usage))
        return findings

    def _builtins_finding(self, usage: dict[str, ModuleUsage]) -> Finding:
        details: list[str] = []
        hints: list[str] = []
        zones = {s: sorted(m for m, u in usage.items() if u.category is s) for s in Severity}

        for zone in (Severity.GREEN, Severity.YELLOW, Severity.RED):
            modules = zones[zone]
            if not modules:
                continue
            details.append(f"{zone.value.capitalize()} zone ({len(modules)} modules):")
            for mod in modules:
                line = f"  - {mod} ({len(usage[mod].locations)} imports)"
                info = get_node_module(mod)
                if info and info.notes and zone is not Severity.GREEN:
                    line += f" - {info.notes}"
                if info and info.bun_alternatives:
                    line += f" (alternatives: {', '.join(info.bun_alternatives)})"
                details.append(line)

        if zones[Severity.YELLOW]:
            hints.append("Yellow zone modules work in Bun but may have behavior differences.")
            hints.append("Test code using these modules carefully after migration.")
        if zones[Severity.RED]:
            hints.append("Red zone modules have limited or no support in Bun.")
            hints.append("Consider alternatives or conditional code paths.")

        return Finding(
            id="api.node_builtins",
            title=f"Node.js built-in modules detected: {len(usage)} modules",
            severity=max_severity(*(u.category for u in usage.values())),
            details=details,
            hints=hints or ["Most Node.js APIs work identically in Bun."],
        )

    def _prefix_finding(self, modules: list[str], usage: dict[str, ModuleUsage]) -> Finding:
        details = ["Modules without `node:` prefix:"]
        for mod in modules:
            locations = usage[mod].locations
            details.append(f"  - {mod}")
            details.extend(f"    {loc}" for loc in locations[:MAX_LOCATIONS])
            if len(locations) > MAX_LOCATIONS:
                details.append(f"    ... and {len(locations) - MAX_LOCATIONS} more")

        return Finding(
            id="api.node_prefix",
            title="Consider using `node:` prefix for Node.js built-ins",
            severity=Severity.GREEN,
            details=details,
            hints=[
                "The `node:` prefix makes it explicit that you're using Node.js APIs.",
                "Example: `import { readFileSync } from 'node:fs'`",
            ],
        )
