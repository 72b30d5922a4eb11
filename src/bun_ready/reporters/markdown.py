"""Markdown report generator."""

from __future__ import annotations

from bun_ready.ci import SEVERITY_BADGE, sort_findings
from bun_ready.config import BunReadyConfig
from bun_ready.models import (
    Finding,
    FindingsSummary,
    PackageAnalysis,
    PackageUsage,
    ScanResult,
    Severity,
    StepResult,
)

READINESS = {
    Severity.GREEN: "✅ Ready to migrate to Bun.",
    Severity.YELLOW: "⚠️ Not ready yet, but migration is possible with some changes.",
    Severity.RED: "❌ Not ready: blocking issues must be fixed before migrating.",
}

# Package step logs longer than this are left out of the non-detailed report.
MAX_INLINE_LOG_LINES = 10


def badge(severity: Severity) -> str:
    return f"{SEVERITY_BADGE[severity]} {severity.value.upper()}"


def _summary_table(summary: FindingsSummary) -> list[str]:
    return [
        "## Findings Summary",
        "",
        "| Status | Count |",
        "|--------|-------|",
        f"| 🟢 Green | {summary.green} |",
        f"| 🟡 Yellow | {summary.yellow} |",
        f"| 🔴 Red | {summary.red} |",
        f"| **Total** | **{summary.total}** |",
        "",
    ]


def _finding_block(f: Finding, heading: str = "###") -> list[str]:
    lines = [f"{heading} {f.title} ({badge(f.severity)})", "", f"`{f.id}`", ""]
    lines.extend(f"- {d}" for d in f.details)
    if f.hints:
        lines.append("")
        lines.append("**Hints:**")
        lines.extend(f"- {h}" for h in f.hints)
    lines.append("")
    return lines


def _step_block(title: str, step: StepResult, max_lines: int | None) -> list[str]:
    result = "timed out" if step.ok is None else ("ok" if step.ok else "failed")
    lines = [f"**{title}:** {result} ({step.summary})", ""]
    if step.logs and (max_lines is None or len(step.logs) < max_lines):
        lines.append("```text")
        lines.extend(step.logs)
        lines.append("```")
        lines.append("")
    return lines


def _usage_block(usage: PackageUsage) -> list[str]:
    lines = [f"**Files analyzed:** {usage.analyzed_files}", ""]
    if not usage.files_by_package:
        lines.append("No dependency imports found in source files.")
        lines.append("")
        return lines
    for name, files in usage.files_by_package.items():
        noun = "file" if len(files) == 1 else "files"
        lines.append(f"- **{name}** ({len(files)} {noun})")
        lines.extend(f"  - {path}" for path in files)
    lines.append("")
    return lines


def _config_block(config: BunReadyConfig) -> list[str]:
    info: list[str] = []
    if config.ignore_packages:
        info.append(f"Ignored packages: {', '.join(config.ignore_packages)}")
    if config.ignore_findings:
        info.append(f"Ignored findings: {', '.join(config.ignore_findings)}")
    if config.native_addon_allowlist:
        info.append(f"Native addon allowlist: {', '.join(config.native_addon_allowlist)}")
    if config.fail_on:
        info.append(f"Fail on: {config.fail_on.value}")
    if not info:
        info.append("Using default configuration")
    return ["**Configuration:**", *(f"- {i}" for i in info), ""]


def _package_row(pkg: PackageAnalysis) -> str:
    top = ", ".join(
        f"{SEVERITY_BADGE[f.severity]} {f.title}" for f in sort_findings(pkg.findings)[:2]
    )
    return f"| {pkg.name} | `{pkg.path}` | {badge(pkg.severity)} | {top or 'No issues'} |"


def render_markdown(
    result: ScanResult,
    config: BunReadyConfig | None = None,
    detailed: bool = False,
) -> str:
    """Render scan results as Markdown."""
    lines: list[str] = []
    step_lines = None if detailed else MAX_INLINE_LOG_LINES

    lines.append("# bun-ready report")
    lines.append("")
    lines.append(READINESS[result.severity])
    lines.append("")
    lines.extend(_summary_table(result.summary))
    lines.append(f"**Overall:** {badge(result.severity)}")
    lines.append("")
    lines.append(f"- **Date**: {result.timestamp:%Y-%m-%d %H:%M UTC}")
    lines.append(f"- **Report version**: {result.version}")
    lines.append(f"- **Exit code**: {result.exit_code}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.extend(f"- {line}" for line in result.summary_lines)
    lines.append("")

    if config is not None:
        lines.extend(_config_block(config))

    if result.repo is not None:
        lines.append("## Root Package")
        lines.append("")
        lines.append(f"- Path: `{result.repo.package_json_path}`")
        lines.append(f"- Workspaces: {'yes' if result.repo.has_workspaces else 'no'}")
        lines.append(f"- Name: {result.repo.name or 'unknown'}")
        lines.append(f"- Version: {result.repo.version or 'unknown'}")
        lines.append("")

    if result.policy is not None:
        p = result.policy
        lines.append("## Policy")
        lines.append("")
        lines.append(f"- Rules applied: {p.rules_applied}")
        lines.append(f"- Findings modified: {p.findings_modified}")
        lines.append(f"- Findings disabled: {p.findings_disabled}")
        lines.append(f"- Severity upgraded: {p.severity_upgraded}")
        lines.append(f"- Severity downgraded: {p.severity_downgraded}")
        lines.append("")

    if result.threshold_reasons:
        lines.append(f"## Thresholds ({badge(result.threshold_verdict)})")
        lines.append("")
        lines.extend(f"- {r}" for r in result.threshold_reasons)
        lines.append("")

    if result.baseline is not None:
        b = result.baseline
        lines.append("## Baseline Comparison")
        lines.append("")
        lines.append(f"- New findings: {len(b.new_findings)}")
        lines.append(f"- Resolved findings: {len(b.resolved_findings)}")
        lines.append(f"- Severity changes: {len(b.severity_changes)}")
        lines.append(f"- Regression: {'yes' if b.is_regression else 'no'}")
        lines.extend(f"  - {r}" for r in b.regression_reasons)
        lines.append("")

    if result.packages:
        lines.append("## Packages Overview")
        lines.append("")
        lines.append("| Package | Path | Status | Key Findings |")
        lines.append("|---------|------|--------|--------------|")
        for pkg in sorted(result.packages, key=lambda p: p.name):
            lines.append(_package_row(pkg))
        lines.append("")

    if result.install is not None:
        lines.extend(_step_block("bun install (dry-run)", result.install, None))
    if result.test is not None:
        lines.extend(_step_block("bun test", result.test, None))
    if detailed and result.usage is not None:
        lines.append("## Dependency Usage")
        lines.append("")
        lines.extend(_usage_block(result.usage))

    lines.append("## Root Findings")
    lines.append("")
    if not result.findings:
        lines.append("No findings for root package.")
        lines.append("")
    for f in sort_findings(result.findings):
        lines.extend(_finding_block(f))

    for pkg in sorted(result.packages, key=lambda p: p.name):
        lines.append(f"## Package: {pkg.name} ({badge(pkg.severity)})")
        lines.append("")
        lines.append(f"**Path:** `{pkg.path}`")
        lines.append("")
        lines.extend(f"- {line}" for line in pkg.summary_lines)
        lines.append("")
        if pkg.install is not None:
            lines.extend(_step_block("bun install (dry-run)", pkg.install, step_lines))
        if pkg.test is not None:
            lines.extend(_step_block("bun test", pkg.test, step_lines))
        if detailed and pkg.usage is not None:
            lines.extend(_usage_block(pkg.usage))
        if not pkg.findings:
            lines.append("No findings for this package.")
            lines.append("")
        for f in sort_findings(pkg.findings):
            lines.extend(_finding_block(f, heading="####"))

    return "\n".join(lines)
