"""SARIF 2.1.0 output formatter."""

from __future__ import annotations

import json
from pathlib import PurePosixPath
from typing import Any

from bun_ready import __version__
from bun_ready.models import Finding, PackageAnalysis, ScanResult, Severity

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"

SEVERITY_TO_SARIF_LEVEL = {
    Severity.GREEN: "note",
    Severity.YELLOW: "warning",
    Severity.RED: "error",
}


def _rule(finding: Finding) -> dict[str, Any]:
    help_parts: list[str] = []
    if finding.details:
        help_parts.append("Details:")
        help_parts.extend(f"  - {d}" for d in finding.details)
    if finding.hints:
        help_parts.append("Hints:")
        help_parts.extend(f"  - {h}" for h in finding.hints)

    return {
        "id": finding.id,
        "name": finding.id.replace(".", "_"),
        "shortDescription": {"text": finding.title},
        "fullDescription": {"text": finding.details[0] if finding.details else finding.title},
        "help": {"text": "\n".join(help_parts) or "No hints available"},
        "defaultConfiguration": {"level": SEVERITY_TO_SARIF_LEVEL[finding.severity]},
    }


def package_uri(repo_path: str, pkg: PackageAnalysis | None) -> str:
    """Repository-relative package.json of ``pkg``; the root manifest when None."""
    if pkg is None:
        return "package.json"
    try:
        rel = PurePosixPath(pkg.path).relative_to(PurePosixPath(repo_path))
    except ValueError:
        return pkg.name
    return (rel / "package.json").as_posix()


def _result(finding: Finding, uri: str, package_name: str) -> dict[str, Any]:
    message = [finding.title]
    if finding.details:
        message.append("")
        message.append("Details:")
        message.extend(f"- {d}" for d in finding.details)

    return {
        "ruleId": finding.id,
        "level": SEVERITY_TO_SARIF_LEVEL[finding.severity],
        "message": {"text": "\n".join(message)},
        "locations": [{"physicalLocation": {"artifactLocation": {"uri": uri}}}],
        "properties": {"package": package_name},
    }


def scan_result_to_sarif(result: ScanResult) -> dict[str, Any]:
    """Convert a ScanResult to SARIF 2.1.0 format."""
    rules: dict[str, dict[str, Any]] = {}
    results: list[dict[str, Any]] = []

    for finding in result.findings:
        rules.setdefault(finding.id, _rule(finding))
        results.append(_result(finding, package_uri(result.repo_path, None), "root"))

    for pkg in result.packages:
        uri = package_uri(result.repo_path, pkg)
        for finding in pkg.findings:
            rules.setdefault(finding.id, _rule(finding))
            results.append(_result(finding, uri, pkg.name))

    return {
        "$schema": SARIF_SCHEMA,
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "bun-ready",
                        "version": __version__,
                        "rules": [rules[k] for k in sorted(rules)],
                    }
                },
                "results": results,
            }
        ],
    }


def format_sarif(result: ScanResult) -> str:
    """Return SARIF JSON string."""
    return json.dumps(scan_result_to_sarif(result), indent=2)
