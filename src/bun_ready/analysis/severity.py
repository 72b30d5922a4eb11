"""Severity rules for single packages and for a whole workspace tree."""

from __future__ import annotations

from bun_ready.models import Finding, PackageAnalysis, Severity, StepResult, max_severity


def summarize_severity(
    findings: list[Finding],
    install: StepResult | None = None,
    test: StepResult | None = None,
) -> Severity:
    """Worst finding severity, forced to red by an explicitly failed step.

    A step that was skipped (None) does not count. A timed-out step is not a
    failure but still needs review, so it raises the result to yellow.
    """
    severity = max_severity(*(f.severity for f in findings))
    for step in (install, test):
        if step is None:
            continue
        if step.ok is False:
            return Severity.RED
        if step.ok is None:
            severity = max_severity(severity, Severity.YELLOW)
    return severity


def aggregate_severity(root: Severity, packages: list[PackageAnalysis]) -> Severity:
    """Overall verdict: the worst of the root and every package.

    Order of ``packages`` never matters and no package can lower the root.
    """
    if root is Severity.RED:
        return Severity.RED
    if any(p.severity is Severity.RED for p in packages):
        return Severity.RED
    if root is Severity.YELLOW or any(p.severity is Severity.YELLOW for p in packages):
        return Severity.YELLOW
    return Severity.GREEN
