"""Unified data models for findings, policy, baselines and scan results."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REPORT_VERSION = "0.3"


class CamelModel(BaseModel):
    """Base model that serializes to the camelCase keys used on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Severity(StrEnum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def rank(self) -> int:
        return {
            Severity.GREEN: 0,
            Severity.YELLOW: 1,
            Severity.RED: 2,
        }[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def upgrade(self) -> Severity:
        """One step toward red; red stays red."""
        if self is Severity.GREEN:
            return Severity.YELLOW
        return Severity.RED

    def downgrade(self) -> Severity:
        """One step toward green; green stays green."""
        if self is Severity.RED:
            return Severity.YELLOW
        return Severity.GREEN


def max_severity(*severities: Severity) -> Severity:
    """Worst of the given severities, green when none are given."""
    return max(severities, default=Severity.GREEN)


class Finding(CamelModel):
    """A single detection result from any detector."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(description="Stable dotted identifier, e.g. deps.native_addons")
    title: str
    severity: Severity
    details: list[str] = Field(default_factory=list)
    hints: list[str] = Field(default_factory=list)


class FindingsSummary(CamelModel):
    """Aggregate counts by severity."""

    green: int = 0
    yellow: int = 0
    red: int = 0
    total: int = 0

    @classmethod
    def from_findings(cls, findings: list[Finding]) -> FindingsSummary:
        counts: dict[str, int] = {}
        for f in findings:
            counts[f.severity.value] = counts.get(f.severity.value, 0) + 1
        return cls(
            green=counts.get("green", 0),
            yellow=counts.get("yellow", 0),
            red=counts.get("red", 0),
            total=len(findings),
        )


class StepStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class StepResult(CamelModel):
    """Outcome of an external install or test step."""

    status: StepStatus
    summary: str
    logs: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool | None:
        # A timeout is neither a pass nor an explicit failure.
        if self.status is StepStatus.TIMED_OUT:
            return None
        return self.status is StepStatus.OK


class Lockfiles(CamelModel):
    bun_lock: bool = False
    bun_lockb: bool = False
    npm_lock: bool = False
    yarn_lock: bool = False
    pnpm_lock: bool = False

    @property
    def has_bun(self) -> bool:
        return self.bun_lock or self.bun_lockb


class RepoInfo(CamelModel):
    """What the detectors see of one package directory."""

    package_json_path: str
    name: str | None = None
    version: str | None = None
    lockfiles: Lockfiles = Field(default_factory=Lockfiles)
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    optional_dependencies: dict[str, str] = Field(default_factory=dict)
    has_workspaces: bool = False

    @property
    def all_dependencies(self) -> dict[str, str]:
        return {
            **self.dependencies,
            **self.dev_dependencies,
            **self.optional_dependencies,
        }


class PackageUsage(CamelModel):
    """Which source files import each declared dependency."""

    analyzed_files: int = 0
    files_by_package: dict[str, list[str]] = Field(default_factory=dict)


class PackageAnalysis(CamelModel):
    """One scanned package; ``path`` is its unique key within a scan."""

    name: str
    path: str
    severity: Severity
    summary_lines: list[str] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    install: StepResult | None = None
    test: StepResult | None = None
    repo: RepoInfo | None = None
    usage: PackageUsage | None = None


# --- Policy ---


class PolicyAction(StrEnum):
    FAIL = "fail"
    WARN = "warn"
    OFF = "off"
    IGNORE = "ignore"

    @property
    def suppresses(self) -> bool:
        return self in (PolicyAction.OFF, PolicyAction.IGNORE)


class SeverityChange(StrEnum):
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    SAME = "same"


WILDCARD = "*"


class PolicyRule(CamelModel):
    id: str = Field(description="A Finding.id or the wildcard '*'")
    action: PolicyAction | None = None
    severity_change: SeverityChange | None = None
    reason: str | None = None


class PolicyThresholds(CamelModel):
    max_warnings: int | None = None
    max_packages_red: int | None = None
    max_packages_yellow: int | None = None

    def is_empty(self) -> bool:
        return (
            self.max_warnings is None
            and self.max_packages_red is None
            and self.max_packages_yellow is None
        )


class PolicyConfig(CamelModel):
    rules: list[PolicyRule] = Field(default_factory=list)
    thresholds: PolicyThresholds | None = None
    fail_on: Severity | None = None


class AppliedPolicyRule(CamelModel):
    finding_id: str
    action: PolicyAction | None = None
    severity_change: SeverityChange | None = None
    original_severity: Severity
    new_severity: Severity | None = None
    reason: str | None = None


class PolicySummary(CamelModel):
    rules_applied: int = 0
    findings_modified: int = 0
    findings_disabled: int = 0
    severity_upgraded: int = 0
    severity_downgraded: int = 0
    rules: list[AppliedPolicyRule] = Field(default_factory=list)


# --- Baseline ---


class FindingFingerprint(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    package_name: str = "root"
    severity: Severity
    details_hash: str

    @property
    def key(self) -> str:
        # Severity is left out so a finding can be tracked across a change.
        return f"{self.id}:{self.package_name}:{self.details_hash}"


class BaselineMetrics(CamelModel):
    total_findings: int = 0
    green_count: int = 0
    yellow_count: int = 0
    red_count: int = 0
    packages_green: int = 0
    packages_yellow: int = 0
    packages_red: int = 0


class BaselineData(CamelModel):
    version: str = REPORT_VERSION
    scan_version: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    repo_path: str = ""
    findings: list[FindingFingerprint] = Field(default_factory=list)
    metrics: BaselineMetrics = Field(default_factory=BaselineMetrics)


class FingerprintSeverityChange(CamelModel):
    fingerprint: FindingFingerprint
    old_severity: Severity
    new_severity: Severity


class BaselineComparison(CamelModel):
    new_findings: list[FindingFingerprint] = Field(default_factory=list)
    resolved_findings: list[FindingFingerprint] = Field(default_factory=list)
    severity_changes: list[FingerprintSeverityChange] = Field(default_factory=list)
    is_regression: bool = False
    regression_reasons: list[str] = Field(default_factory=list)


# --- Scan result ---


class ScanResult(CamelModel):
    """Complete result of a bun-ready scan run."""

    version: str = REPORT_VERSION
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    repo_path: str = ""
    severity: Severity = Severity.GREEN
    summary_lines: list[str] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    install: StepResult | None = None
    test: StepResult | None = None
    repo: RepoInfo | None = None
    usage: PackageUsage | None = None
    packages: list[PackageAnalysis] = Field(default_factory=list)
    policy: PolicySummary | None = None
    threshold_verdict: Severity = Severity.GREEN
    threshold_reasons: list[str] = Field(default_factory=list)
    baseline: BaselineComparison | None = None
    exit_code: int = 0

    @property
    def all_findings(self) -> list[Finding]:
        findings = list(self.findings)
        for pkg in self.packages:
            findings.extend(pkg.findings)
        return findings

    @property
    def summary(self) -> FindingsSummary:
        return FindingsSummary.from_findings(self.findings)
