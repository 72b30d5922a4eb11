"""package.json and lockfile heuristics that need no source parsing."""

from __future__ import annotations

from bun_ready.detectors.base import DetectorContext
from bun_ready.models import Finding, Severity

NATIVE_SUSPECTS = {
    "node-gyp",
    "node-pre-gyp",
    "prebuild-install",
    "bindings",
    "nan",
    "node-addon-api",
    "node-sass",
    "sharp",
    "canvas",
    "better-sqlite3",
    "sqlite3",
    "bcrypt",
    "argon2",
    "bufferutil",
    "utf-8-validate",
    "fsevents",
}

# Substrings that mark a package name as a likely native build.
NATIVE_NAME_HINTS = ("napi", "node-gyp", "prebuild", "ffi")

# These always need a native toolchain at install time.
NATIVE_HARD_RED = {"node-gyp", "node-sass"}

LIFECYCLE_SCRIPTS = (
    "preinstall",
    "install",
    "postinstall",
    "preprepare",
    "prepare",
    "postprepare",
)

NPM_SPECIFIC_NEEDLES = ("npm ", "npx ", "pnpm ", "yarn ", "npm_config_", "corepack", "npm ci")


def _includes_any(s: str, needles) -> bool:
    lower = s.lower()
    return any(n in lower for n in needles)


class LockfileDetector:
    name = "lockfile"

    def detect(self, ctx: DetectorContext) -> list[Finding]:
        lf = ctx.repo.lockfiles
        if lf.has_bun:
            return []

        present: list[str] = []
        if lf.npm_lock:
            present.append("package-lock.json")
        if lf.yarn_lock:
            present.append("yarn.lock")
        if lf.pnpm_lock:
            present.append("pnpm-lock.yaml")

        if not present:
            return [Finding(
                id="lockfile.missing",
                title="No lockfile found",
                severity=Severity.YELLOW,
                details=[
                    "No bun.lock/bun.lockb, package-lock.json, yarn.lock, "
                    "or pnpm-lock.yaml detected."
                ],
                hints=[
                    "Lockfiles improve reproducibility. Consider committing one before migration.",
                    "If you migrate to Bun, generate bun.lock and verify installs are stable.",
                ],
            )]

        return [Finding(
            id="lockfile.migration",
            title="Non-Bun lockfile detected (Bun will likely migrate on first install)",
            severity=Severity.YELLOW,
            details=[f"Detected: {', '.join(present)}"],
            hints=[
                "Run bun install once on a branch and review the generated bun.lock.",
                "Compare resolved versions and run your test suite.",
            ],
        )]


class ScriptDetector:
    name = "scripts"

    def detect(self, ctx: DetectorContext) -> list[Finding]:
        scripts = ctx.repo.scripts
        findings: list[Finding] = []

        lifecycle = sorted(k for k in scripts if k in LIFECYCLE_SCRIPTS)
        if lifecycle:
            findings.append(Finding(
                id="scripts.lifecycle",
                title="Lifecycle scripts in the project",
                severity=Severity.YELLOW,
                details=[f"{k}: {scripts[k]}".strip() for k in lifecycle],
                hints=[
                    "Bun runs your project lifecycle scripts during install. "
                    "Verify they don't rely on npm-specific behavior.",
                    "If scripts compile native deps, expect migration friction.",
                ],
            ))

        npmish = sorted(k for k, v in scripts.items() if _includes_any(v, NPM_SPECIFIC_NEEDLES))
        if npmish:
            findings.append(Finding(
                id="scripts.npm_specific",
                title="Scripts reference npm/yarn/pnpm-specific commands or env",
                severity=Severity.YELLOW,
                details=[f"{k}: {scripts[k]}".strip() for k in npmish],
                hints=[
                    "Consider rewriting scripts to be runner-agnostic, or provide a Bun path.",
                    "If using npm-only flags/behavior, verify equivalence on Bun.",
                ],
            ))

        return findings


class NativeAddonDetector:
    name = "native"

    def detect(self, ctx: DetectorContext) -> list[Finding]:
        deps = ctx.repo.all_dependencies
        allow = set(ctx.native_addon_allowlist)
        suspects = sorted(
            n for n in deps
            if n not in allow
            and (n in NATIVE_SUSPECTS or _includes_any(n, NATIVE_NAME_HINTS))
        )
        if not suspects:
            return []

        hard_red = any(n in NATIVE_HARD_RED for n in suspects)
        return [Finding(
            id="deps.native_addons",
            title="Potential native addons / node-gyp toolchain risk",
            severity=Severity.RED if hard_red else Severity.YELLOW,
            details=[f"{n}@{deps[n]}" for n in suspects],
            hints=[
                "Native addons often require toolchains and can be sensitive "
                "to runtime differences.",
                "If you see install/build failures, try upgrading these packages "
                "or switching to pure-JS alternatives.",
            ],
        )]
