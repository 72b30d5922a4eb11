"""Exit codes and the stable CI summary.

Exit codes:
    0 - GREEN: nothing blocks migration (or below the failOn level)
    1 - MISUSE: invalid invocation, never a scan outcome
    2 - YELLOW: manual review needed, default policy only
    3 - FAILED: at or above the failOn level, or the run itself failed
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field

from bun_ready.models import Finding, ScanResult, Severity


class ExitCode(IntEnum):
    GREEN = 0
    MISUSE = 1
    YELLOW = 2
    FAILED = 3


def calculate_exit_code(severity: Severity, fail_on: Severity | None = None) -> int:
    """Map the final severity to an exit code under a failOn policy.

    No ``fail_on`` behaves like ``red``: yellow is flagged (2) but not failing.
    Under ``yellow`` or ``green`` the yellow verdict collapses to pass/fail.
    """
    severity = Severity(severity)
    fail_on = Severity(fail_on) if fail_on is not None else None
    if severity is Severity.GREEN:
        return ExitCode.GREEN
    if severity is Severity.RED:
        return ExitCode.FAILED

    if fail_on is Severity.GREEN:
        return ExitCode.FAILED
    if fail_on is Severity.YELLOW:
        return ExitCode.GREEN
    return ExitCode.YELLOW


def resolve_exit_code(
    severity: Severity,
    fail_on: Severity | None = None,
    threshold_verdict: Severity = Severity.GREEN,
    regression: bool = False,
) -> int:
    """Final process exit code.

    A threshold breach raises the code to at least 2 and a baseline
    regression to 3; neither can lower what the severity table gives.
    """
    code = calculate_exit_code(severity, fail_on)
    if threshold_verdict is not Severity.GREEN:
        code = max(code, ExitCode.YELLOW)
    if regression:
        code = max(code, ExitCode.FAILED)
    return int(code)


SEVERITY_BADGE = {
    Severity.GREEN: "🟢",
    Severity.YELLOW: "🟡",
    Severity.RED: "🔴",
}


def sort_findings(findings: list[Finding]) -> list[Finding]:
    """Worst first, then by id."""
    return sorted(findings, key=lambda f: (-f.severity.rank, f.id))


def get_top_findings(findings: list[Finding], count: int = 3) -> list[str]:
    return [
        f"{SEVERITY_BADGE[f.severity]} {f.title} ({f.id})"
        for f in sort_findings(findings)[:count]
    ]


def generate_next_actions(findings: list[Finding], limit: int = 5) -> list[str]:
    """First unique hints across findings, in finding order."""
    actions: list[str] = []
    for finding in findings:
        for hint in finding.hints:
            action = hint.strip()
            if action and action not in actions:
                actions.append(action)
    return actions[:limit]


class CISummary(BaseModel):
    verdict: Severity
    top_findings: list[str] = Field(default_factory=list)
    next_actions: list[str] = Field(default_factory=list)
    exit_code: int = 0


def generate_ci_summary(result: ScanResult) -> CISummary:
    findings = result.all_findings
    return CISummary(
        verdict=result.severity,
        top_findings=get_top_findings(findings),
        next_actions=generate_next_actions(sort_findings(findings)),
        exit_code=result.exit_code,
    )


def format_ci_summary_text(summary: CISummary) -> str:
    lines: list[str] = []
    lines.append("=== bun-ready CI Summary ===")
    lines.append("")
    lines.append(f"Verdict: {SEVERITY_BADGE[summary.verdict]} {summary.verdict.value.upper()}")
    lines.append("")

    if summary.top_findings:
        lines.append("Top Issues:")
        for finding in summary.top_findings:
            lines.append(f"  - {finding}")
        lines.append("")

    if summary.next_actions:
        lines.append("Next Actions:")
        for i, action in enumerate(summary.next_actions, 1):
            lines.append(f"  {i}. {action}")
        lines.append("")

    lines.append(f"Exit Code: {summary.exit_code}")
    return "\n".join(lines)


def format_github_job_summary(summary: CISummary) -> str:
    """Markdown for ``$GITHUB_STEP_SUMMARY``."""
    lines: list[str] = []
    lines.append("## bun-ready CI Summary")
    lines.append("")
    lines.append(
        f"### Verdict: {SEVERITY_BADGE[summary.verdict]} **{summary.verdict.value.upper()}**"
    )
    lines.append("")

    if summary.top_findings:
        lines.append("### Top Issues")
        lines.append("")
        for finding in summary.top_findings:
            lines.append(f"- {finding}")
        lines.append("")

    if summary.next_actions:
        lines.append("### Next Actions")
        lines.append("")
        for i, action in enumerate(summary.next_actions, 1):
            lines.append(f"{i}. {action}")
        lines.append("")

    lines.append(f"**Exit Code:** `{summary.exit_code}`")
    return "\n".join(lines)
