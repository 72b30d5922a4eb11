"""ESM/CJS module system analysis."""

from __future__ import annotations

from bun_ready.detectors.base import DetectorContext
from bun_ready.detectors.builtins import CJS_GLOBALS
from bun_ready.detectors.imports import ImportType, ModuleInfo, ModuleType, parse_module_info
from bun_ready.detectors.sources import find_source_files, read_source
from bun_ready.models import Finding, Severity

MAX_FILES = 10
MAX_USAGES = 5


def collect_module_info(ctx: DetectorContext) -> list[ModuleInfo]:
    infos: list[ModuleInfo] = []
    for path in find_source_files(ctx.root):
        content = read_source(path)
        if content is None:
            continue
        infos.append(parse_module_info(content, path.relative_to(ctx.root).as_posix()))
    return infos


class ModuleSystemDetector:
    name = "modules"

    def detect(self, ctx: DetectorContext) -> list[Finding]:
        infos = collect_module_info(ctx)
        findings: list[Finding] = []

        mixed = sorted(
            (i for i in infos if i.module_type is ModuleType.MIXED), key=lambda i: i.file
        )
        if mixed:
            findings.append(self._mixed_finding(mixed))

        usages: dict[str, list[str]] = {}
        for info in infos:
            for usage in info.cjs_globals:
                usages.setdefault(usage.name, []).append(f"{info.file}:{usage.line}")
        if usages:
            findings.append(self._globals_finding(usages))

        return findings

    def _mixed_finding(self, mixed: list[ModuleInfo]) -> Finding:
        details = [f"Found {len(mixed)} file(s) with mixed ESM/CJS imports:"]
        for info in mixed[:MAX_FILES]:
            esm_lines = [str(i.line) for i in info.imports if i.import_type is not ImportType.CJS]
            cjs_lines = [str(i.line) for i in info.imports if i.import_type is ImportType.CJS]
            details.append(info.file)
            if esm_lines:
                details.append(f"  - ESM imports on lines: {', '.join(esm_lines)}")
            if cjs_lines:
                details.append(f"  - CJS requires on lines: {', '.join(cjs_lines)}")
        if len(mixed) > MAX_FILES:
            details.append(f"... and {len(mixed) - MAX_FILES} more files")

        return Finding(
            id="modules.esm_cjs_mixed",
            title="Mixed ESM/CJS imports detected",
            severity=Severity.YELLOW,
            details=details,
            hints=[
                "Bun supports both ESM and CJS modules.",
                "However, mixing them in the same file can cause issues with some bundlers.",
                "Consider standardizing on ESM for better compatibility.",
            ],
        )

    def _globals_finding(self, usages: dict[str, list[str]]) -> Finding:
        details = ["Found CJS globals that may not work in ESM context:"]
        for name in sorted(usages):
            locations = sorted(usages[name])
            details.append(f"{name} ({len(locations)} occurrences):")
            details.extend(f"  - {loc}" for loc in locations[:MAX_USAGES])
            if len(locations) > MAX_USAGES:
                details.append(f"  - ... and {len(locations) - MAX_USAGES} more")
            info = CJS_GLOBALS.get(name)
            if info:
                details.append(f"  - Replace with: `{info.esm_replacement}` ({info.notes})")

        return Finding(
            id="modules.cjs_globals",
            title="CJS-specific globals detected",
            severity=Severity.YELLOW,
            details=details,
            hints=[
                "Replace __dirname with import.meta.dirname (available in Bun and Node 20.11+)",
                "Replace __filename with import.meta.filename or fileURLToPath(import.meta.url)",
                "Replace require.main === module with import.meta.main",
            ],
        )
