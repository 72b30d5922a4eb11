"""Node.js built-in modules classified by how well Bun supports them."""

from __future__ import annotations

from dataclasses import dataclass

from bun_ready.models import Severity


@dataclass(frozen=True)
class NodeModule:
    name: str
    category: Severity
    notes: str | None = None
    bun_alternatives: tuple[str, ...] = ()


@dataclass(frozen=True)
class CjsGlobal:
    name: str
    esm_replacement: str
    notes: str


NODE_PREFIX = "node:"

_GREEN = [
    "fs", "fs/promises", "path", "path/posix", "path/win32", "url", "util",
    "util/types", "events", "stream", "stream/promises", "stream/web", "crypto",
    "buffer", "string_decoder", "querystring", "os", "dns", "dns/promises",
    "console", "process", "assert", "assert/strict", "constants", "timers",
    "timers/promises", "readline", "readline/promises",
]

_YELLOW = [
    NodeModule("child_process", Severity.YELLOW,
               "spawn and exec work, but signal handling may differ slightly"),
    NodeModule("http", Severity.YELLOW, bun_alternatives=("Bun.serve",)),
    NodeModule("https", Severity.YELLOW, bun_alternatives=("Bun.serve",)),
    NodeModule("http2", Severity.YELLOW),
    NodeModule("net", Severity.YELLOW),
    NodeModule("worker_threads", Severity.YELLOW,
               "Works but Bun has a different threading model"),
    NodeModule("zlib", Severity.YELLOW),
    NodeModule("tls", Severity.YELLOW, "Most features work, some cert options may differ"),
    NodeModule("perf_hooks", Severity.YELLOW),
    NodeModule("async_hooks", Severity.YELLOW,
               "Limited support in Bun - some hooks may not fire"),
    NodeModule("cluster", Severity.YELLOW),
    NodeModule("dgram", Severity.YELLOW),
    NodeModule("punycode", Severity.YELLOW, "Deprecated in Node.js"),
    NodeModule("domain", Severity.YELLOW, "Deprecated in Node.js"),
]

_RED = [
    NodeModule("vm", Severity.RED,
               "Limited support in Bun - consider isolated-vm or other alternatives",
               ("isolated-vm",)),
    NodeModule("vm/promises", Severity.RED, "Limited support in Bun"),
    NodeModule("v8", Severity.RED, "Not applicable - Bun uses JavaScriptCore, not V8"),
    NodeModule("v8/tools", Severity.RED, "V8-specific, not available in Bun"),
    NodeModule("inspector", Severity.RED, "Different API in Bun - debugger integration differs"),
    NodeModule("inspector/promises", Severity.RED, "Different API in Bun"),
    NodeModule("wasi", Severity.RED, "Experimental support in Bun - may not work correctly"),
    NodeModule("repl", Severity.RED, "Implementation differs in Bun - use bun repl instead"),
    NodeModule("trace_events", Severity.RED, "Not available in Bun"),
]

NODE_MODULES: dict[str, NodeModule] = {
    **{name: NodeModule(name, Severity.GREEN) for name in _GREEN},
    **{m.name: m for m in _YELLOW},
    **{m.name: m for m in _RED},
}

CJS_GLOBALS: dict[str, CjsGlobal] = {
    g.name: g
    for g in [
        CjsGlobal("__dirname", "import.meta.dirname",
                  "Available in Node 20.11+ and Bun natively"),
        CjsGlobal("__filename", "import.meta.filename",
                  "import.meta.url returns a URL string, use fileURLToPath for a path"),
        CjsGlobal("require.main", "import.meta.main",
                  "Bun-specific, checks if current file is entry point"),
        CjsGlobal("require.cache", "N/A",
                  "No direct ESM equivalent - module caching works differently"),
    ]
}


def strip_prefix(name: str) -> str:
    return name[len(NODE_PREFIX):] if name.startswith(NODE_PREFIX) else name


def get_node_module(name: str) -> NodeModule | None:
    return NODE_MODULES.get(strip_prefix(name))


def is_node_builtin_import(name: str) -> bool:
    if name.startswith(NODE_PREFIX):
        return True
    return name in NODE_MODULES or name.split("/")[0] in NODE_MODULES


def module_category(name: str) -> Severity:
    """Category of a built-in; unknown built-ins are assumed green."""
    module = get_node_module(name)
    if module is None:
        module = NODE_MODULES.get(strip_prefix(name).split("/")[0])
    return module.category if module else Severity.GREEN
