"""Regex import/require scanner for JavaScript and TypeScript sources."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum


class ImportType(StrEnum):
    ESM_NAMED = "esm-named"
    ESM_DEFAULT = "esm-default"
    ESM_NAMESPACE = "esm-namespace"
    ESM_DYNAMIC = "esm-dynamic"
    CJS = "cjs"


class ModuleType(StrEnum):
    ESM = "esm"
    CJS = "cjs"
    MIXED = "mixed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ParsedImport:
    module: str
    line: int
    import_type: ImportType

    @property
    def has_node_prefix(self) -> bool:
        return self.module.startswith("node:")


@dataclass(frozen=True)
class CjsGlobalUsage:
    name: str
    line: int
    context: str = ""


@dataclass
class ModuleInfo:
    file: str
    imports: list[ParsedImport] = field(default_factory=list)
    cjs_globals: list[CjsGlobalUsage] = field(default_factory=list)
    module_type: ModuleType = ModuleType.UNKNOWN


IMPORT_PATTERNS: list[tuple[ImportType, re.Pattern[str]]] = [
    (ImportType.ESM_NAMED, re.compile(r"""import\s+\{[^}]*\}\s+from\s+['"]([^'"]+)['"]""")),
    (ImportType.ESM_DEFAULT, re.compile(r"""import\s+\w+\s+from\s+['"]([^'"]+)['"]""")),
    (ImportType.ESM_NAMESPACE, re.compile(r"""import\s+\*\s+as\s+\w+\s+from\s+['"]([^'"]+)['"]""")),
    (ImportType.ESM_DYNAMIC, re.compile(r"""import\s*\(\s*['"]([^'"]+)['"]\s*\)""")),
    (ImportType.CJS, re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""")),
]

ESM_EXPORT = re.compile(r"^export\s+", re.MULTILINE)
CJS_EXPORTS = re.compile(r"module\.exports\s*=|exports\.\w+\s*=")

CJS_GLOBAL_PATTERNS: dict[str, re.Pattern[str]] = {
    "__dirname": re.compile(r"__dirname"),
    "__filename": re.compile(r"__filename"),
    "require.main": re.compile(r"require\.main"),
    "require.cache": re.compile(r"require\.cache"),
}


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def parse_imports(content: str) -> list[ParsedImport]:
    """All imports sorted by line, one entry per (module, line)."""
    seen: set[tuple[str, int]] = set()
    imports: list[ParsedImport] = []
    for import_type, pattern in IMPORT_PATTERNS:
        for match in pattern.finditer(content):
            line = _line_of(content, match.start())
            key = (match.group(1), line)
            if key in seen:
                continue
            seen.add(key)
            imports.append(ParsedImport(match.group(1), line, import_type))
    return sorted(imports, key=lambda i: i.line)


def parse_cjs_globals(content: str) -> list[CjsGlobalUsage]:
    lines = content.split("\n")
    usages: list[CjsGlobalUsage] = []
    for name, pattern in CJS_GLOBAL_PATTERNS.items():
        for match in pattern.finditer(content):
            line = _line_of(content, match.start())
            usages.append(CjsGlobalUsage(name, line, lines[line - 1].strip()))
    return sorted(usages, key=lambda u: u.line)


def parse_module_info(content: str, file: str) -> ModuleInfo:
    imports = parse_imports(content)
    esm = (
        any(i.import_type is not ImportType.CJS for i in imports)
        or ESM_EXPORT.search(content) is not None
    )
    cjs = (
        any(i.import_type is ImportType.CJS for i in imports)
        or CJS_EXPORTS.search(content) is not None
    )

    if esm and cjs:
        module_type = ModuleType.MIXED
    elif esm:
        module_type = ModuleType.ESM
    elif cjs:
        module_type = ModuleType.CJS
    else:
        module_type = ModuleType.UNKNOWN

    return ModuleInfo(
        file=file,
        imports=imports,
        cjs_globals=parse_cjs_globals(content),
        module_type=module_type,
    )
