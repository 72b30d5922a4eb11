"""Findings derived from ``bun install`` output."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bun_ready.models import Finding, Severity

BLOCKED_KEYWORDS = ("blocked", "not allowed", "lifecycle script")
TRUSTED_KEYWORDS = ("trusteddependencies", "trusted")

BLOCKED_PACKAGE = re.compile(
    r"blocked:\s+(?:lifecycle\s+script\s+(?:for\s+)?)?(@?[a-z0-9._-]+/[a-z0-9._-]+|@?[a-z0-9._-]+)",
    re.IGNORECASE,
)


@dataclass
class InstallLogAnalysis:
    blocked_deps: list[str] = field(default_factory=list)
    trusted_mentions: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def severity(self) -> Severity:
        if self.blocked_deps:
            return Severity.RED
        if self.trusted_mentions or self.warnings:
            return Severity.YELLOW
        return Severity.GREEN


def parse_install_logs(logs: list[str]) -> InstallLogAnalysis:
    blocked: set[str] = set()
    trusted: set[str] = set()
    warnings: set[str] = set()

    for log in logs:
        lower = log.lower()
        if any(k in lower for k in BLOCKED_KEYWORDS):
            match = BLOCKED_PACKAGE.search(log)
            if match and match.group(1).lower() not in BLOCKED_KEYWORDS:
                blocked.add(match.group(1))
        if any(k in lower for k in TRUSTED_KEYWORDS):
            trusted.add(log.strip())
        elif "warn" in lower:
            warnings.add(log.strip())

    return InstallLogAnalysis(
        blocked_deps=sorted(blocked),
        trusted_mentions=sorted(trusted),
        warnings=sorted(warnings),
    )


def findings_from_install_logs(logs: list[str]) -> list[Finding]:
    analysis = parse_install_logs(logs)
    findings: list[Finding] = []

    if analysis.blocked_deps:
        findings.append(Finding(
            id="install.blocked_scripts",
            title="Bun blocked dependency lifecycle scripts during install",
            severity=Severity.RED,
            details=analysis.blocked_deps,
            hints=[
                "Bun does not run dependency lifecycle scripts unless the package "
                "is listed in trustedDependencies.",
                "Add packages that need their postinstall to trustedDependencies in package.json.",
            ],
        ))

    notes = analysis.trusted_mentions + analysis.warnings
    if notes:
        findings.append(Finding(
            id="install.warnings",
            title="bun install reported warnings",
            severity=Severity.YELLOW,
            details=notes,
            hints=["Review the install output before switching package managers."],
        ))

    return findings
