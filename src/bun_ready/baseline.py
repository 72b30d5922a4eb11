"""Finding fingerprints and baseline storage for regression detection."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path

from pydantic import ValidationError

from bun_ready.models import (
    BaselineComparison,
    BaselineData,
    BaselineMetrics,
    Finding,
    FindingFingerprint,
    FingerprintSeverityChange,
    PackageAnalysis,
    ScanResult,
    Severity,
)

logger = logging.getLogger("bun_ready.baseline")

ROOT_PACKAGE = "root"


def create_finding_fingerprint(
    finding: Finding, package_name: str | None = None
) -> FindingFingerprint:
    """Content-derived identity of one finding occurrence.

    Details are trimmed, lower-cased and sorted before hashing, so detail
    order and case never change the fingerprint.
    """
    normalized = "|".join(sorted(d.strip().lower() for d in finding.details))
    details_hash = hashlib.md5(normalized.encode("utf-8")).hexdigest()
    return FindingFingerprint(
        id=finding.id,
        package_name=package_name or ROOT_PACKAGE,
        severity=finding.severity,
        details_hash=details_hash,
    )


def fingerprints_for_result(result: ScanResult) -> list[FindingFingerprint]:
    """Fingerprint root findings and every package's findings."""
    fingerprints = [create_finding_fingerprint(f) for f in result.findings]
    for pkg in result.packages:
        fingerprints.extend(create_finding_fingerprint(f, pkg.name) for f in pkg.findings)
    return sorted(fingerprints, key=lambda fp: (fp.package_name, fp.id, fp.details_hash))


def calculate_baseline_metrics(
    findings: list[Finding], packages: list[PackageAnalysis]
) -> BaselineMetrics:
    def count(items, severity: Severity) -> int:
        return sum(1 for i in items if i.severity is severity)

    return BaselineMetrics(
        total_findings=len(findings),
        green_count=count(findings, Severity.GREEN),
        yellow_count=count(findings, Severity.YELLOW),
        red_count=count(findings, Severity.RED),
        packages_green=count(packages, Severity.GREEN),
        packages_yellow=count(packages, Severity.YELLOW),
        packages_red=count(packages, Severity.RED),
    )


def compare_findings(
    baseline: list[FindingFingerprint], current: list[FindingFingerprint]
) -> BaselineComparison:
    """Diff a stored fingerprint set against the current one.

    Keys are ``id:packageName:detailsHash``. A key present on both sides
    with a different severity is a severity change, never new/resolved.
    A finding that moved packages is a resolution plus a new finding.
    """
    baseline_map = {fp.key: fp for fp in baseline}
    current_map = {fp.key: fp for fp in current}

    new_findings = [fp for key, fp in current_map.items() if key not in baseline_map]
    resolved_findings = [fp for key, fp in baseline_map.items() if key not in current_map]

    severity_changes: list[FingerprintSeverityChange] = []
    for key, current_fp in current_map.items():
        baseline_fp = baseline_map.get(key)
        if baseline_fp is not None and baseline_fp.severity is not current_fp.severity:
            severity_changes.append(FingerprintSeverityChange(
                fingerprint=current_fp,
                old_severity=baseline_fp.severity,
                new_severity=current_fp.severity,
            ))

    reasons: list[str] = []
    new_red = [fp for fp in new_findings if fp.severity is Severity.RED]
    if new_red:
        reasons.append(
            f"New RED findings detected: {', '.join(fp.id for fp in new_red)}"
        )
    upgraded_to_red = [c for c in severity_changes if c.new_severity is Severity.RED]
    if upgraded_to_red:
        reasons.append(
            "Severity upgraded to RED: "
            + ", ".join(c.fingerprint.id for c in upgraded_to_red)
        )

    return BaselineComparison(
        new_findings=new_findings,
        resolved_findings=resolved_findings,
        severity_changes=severity_changes,
        is_regression=bool(reasons),
        regression_reasons=reasons,
    )


def build_baseline(result: ScanResult, scan_version: str | None = None) -> BaselineData:
    return BaselineData(
        scan_version=scan_version,
        timestamp=datetime.now(UTC).isoformat(),
        repo_path=result.repo_path,
        findings=fingerprints_for_result(result),
        metrics=calculate_baseline_metrics(result.all_findings, result.packages),
    )


def update_baseline(
    existing: BaselineData,
    current: list[FindingFingerprint],
    metrics: BaselineMetrics | None = None,
) -> BaselineData:
    """Replace the findings of ``existing`` wholesale and refresh its timestamp.

    ``metrics`` replaces the stored metrics when given.
    """
    update: dict = {
        "timestamp": datetime.now(UTC).isoformat(),
        "findings": list(current),
    }
    if metrics is not None:
        update["metrics"] = metrics
    return existing.model_copy(update=update)


def save_baseline(baseline: BaselineData, path: Path) -> None:
    """Write the full baseline to ``path``, overwriting any previous file."""
    path.write_text(json.dumps(baseline.to_json_dict(), indent=2) + "\n", encoding="utf-8")
    logger.debug("Saved baseline with %d findings to %s", len(baseline.findings), path)


class BaselineStatus(StrEnum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID = "invalid"


@dataclass(frozen=True)
class BaselineLoad:
    status: BaselineStatus
    data: BaselineData | None = None
    error: str | None = None


def read_baseline(path: Path) -> BaselineLoad:
    """Load a baseline, telling apart a missing file from a malformed one."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return BaselineLoad(BaselineStatus.NOT_FOUND)
    except OSError as e:
        return BaselineLoad(BaselineStatus.INVALID, error=str(e))

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return BaselineLoad(BaselineStatus.INVALID, error=f"invalid JSON: {e}")

    if not (
        isinstance(data, dict)
        and isinstance(data.get("version"), str)
        and isinstance(data.get("timestamp"), str)
        and isinstance(data.get("findings"), list)
    ):
        return BaselineLoad(
            BaselineStatus.INVALID,
            error="expected 'version', 'timestamp' and 'findings' fields",
        )

    try:
        baseline = BaselineData.model_validate(data)
    except ValidationError as e:
        return BaselineLoad(BaselineStatus.INVALID, error=str(e).splitlines()[0])

    return BaselineLoad(BaselineStatus.OK, data=baseline)
