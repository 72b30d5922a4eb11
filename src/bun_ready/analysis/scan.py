"""Per-package analysis and whole-repository scan orchestration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from bun_ready.analysis.severity import aggregate_severity, summarize_severity
from bun_ready.baseline import (
    calculate_baseline_metrics,
    compare_findings,
    fingerprints_for_result,
)
from bun_ready.changed import filter_changed, git_changed_paths
from bun_ready.ci import resolve_exit_code
from bun_ready.config import BunReadyConfig
from bun_ready.detectors import run_detectors
from bun_ready.detectors.base import DetectorContext
from bun_ready.detectors.heuristics import LIFECYCLE_SCRIPTS
from bun_ready.detectors.install_logs import findings_from_install_logs
from bun_ready.detectors.usage import collect_package_usage
from bun_ready.models import (
    BaselineData,
    Finding,
    Lockfiles,
    PackageAnalysis,
    PolicyConfig,
    PolicySummary,
    RepoInfo,
    ScanResult,
    Severity,
    StepResult,
)
from bun_ready.policy import apply_policy, check_thresholds, package_threshold_breaches
from bun_ready.runner import (
    DEFAULT_TIMEOUT,
    is_bun_available,
    run_install_dry_run,
    run_tests,
    should_run_tests,
)
from bun_ready.workspaces import WorkspacePackage, discover_workspaces, read_package_json

logger = logging.getLogger("bun_ready.scan")


class Scope(StrEnum):
    ROOT = "root"
    PACKAGES = "packages"
    ALL = "all"

    @property
    def includes_root(self) -> bool:
        return self is not Scope.PACKAGES

    @property
    def includes_packages(self) -> bool:
        return self is not Scope.ROOT


@dataclass
class ScanOptions:
    root: Path
    run_install: bool = True
    run_test: bool = True
    timeout: float = DEFAULT_TIMEOUT
    scope: Scope = Scope.ALL
    since: str | None = None
    detailed: bool = False
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    config: BunReadyConfig = field(default_factory=BunReadyConfig)
    baseline: BaselineData | None = None


def _dict_of_strings(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def read_repo_info(package_dir: Path) -> RepoInfo:
    """Manifest and lockfile facts for one package directory."""
    package_json = package_dir / "package.json"
    pkg = read_package_json(package_json) or {}
    name = pkg.get("name")
    version = pkg.get("version")
    return RepoInfo(
        package_json_path=package_json.as_posix(),
        name=name if isinstance(name, str) else None,
        version=version if isinstance(version, str) else None,
        lockfiles=Lockfiles(
            bun_lock=(package_dir / "bun.lock").is_file(),
            bun_lockb=(package_dir / "bun.lockb").is_file(),
            npm_lock=(package_dir / "package-lock.json").is_file(),
            yarn_lock=(package_dir / "yarn.lock").is_file(),
            pnpm_lock=(package_dir / "pnpm-lock.yaml").is_file(),
        ),
        scripts=_dict_of_strings(pkg.get("scripts")),
        dependencies=_dict_of_strings(pkg.get("dependencies")),
        dev_dependencies=_dict_of_strings(pkg.get("devDependencies")),
        optional_dependencies=_dict_of_strings(pkg.get("optionalDependencies")),
        has_workspaces=bool(pkg.get("workspaces")),
    )


def missing_package_json(name: str, package_dir: Path) -> PackageAnalysis:
    package_json = (package_dir / "package.json").as_posix()
    return PackageAnalysis(
        name=name,
        path=package_dir.as_posix(),
        severity=Severity.RED,
        summary_lines=["package.json not found"],
        findings=[Finding(
            id="repo.no_package_json",
            title="Missing package.json",
            severity=Severity.RED,
            details=[f"Expected at: {package_json}"],
            hints=["Run bun-ready in a Node.js project root (where package.json exists)."],
        )],
        repo=RepoInfo(package_json_path=package_json),
    )


def drop_ignored(findings: list[Finding], ignore_ids: list[str]) -> list[Finding]:
    if not ignore_ids:
        return findings
    ignored = set(ignore_ids)
    return [f for f in findings if f.id not in ignored]


def _step_label(step: StepResult | None) -> str:
    if step is None:
        return "skipped"
    if step.ok is None:
        return "timed out"
    return "ok" if step.ok else "failed"


def build_summary_lines(
    repo: RepoInfo,
    findings: list[Finding],
    install: StepResult | None,
    test: StepResult | None,
) -> list[str]:
    has_lifecycle = any(k in LIFECYCLE_SCRIPTS for k in repo.scripts)
    return [
        f"Lockfiles: {'bun' if repo.lockfiles.has_bun else 'non-bun or missing'}",
        f"Lifecycle scripts: {'present' if has_lifecycle else 'none'}",
        f"Native addon risk: {'yes' if any(f.id == 'deps.native_addons' for f in findings) else 'no'}",
        f"bun install dry-run: {_step_label(install)}",
        f"bun test: {_step_label(test)}",
    ]


async def analyze_package(
    name: str, package_dir: Path, opts: ScanOptions, bun_available: bool
) -> PackageAnalysis:
    """Detectors plus the optional install dry-run and test run for one package.

    Findings are returned before ignore lists and policy are applied.
    """
    if not (package_dir / "package.json").is_file():
        return missing_package_json(name, package_dir)

    repo = read_repo_info(package_dir)
    ctx = DetectorContext(
        root=package_dir,
        repo=repo,
        native_addon_allowlist=list(opts.config.native_addon_allowlist),
    )
    findings = run_detectors(ctx)

    install: StepResult | None = None
    test: StepResult | None = None
    if bun_available:
        if opts.run_install:
            logger.info("Running bun install --dry-run for %s", name)
            install = await run_install_dry_run(package_dir, opts.timeout)
            findings.extend(findings_from_install_logs(install.logs))
        if opts.run_test and should_run_tests(repo):
            logger.info("Running bun test for %s", name)
            test = await run_tests(package_dir, opts.timeout)

    usage = collect_package_usage(package_dir, repo.all_dependencies) if opts.detailed else None

    return PackageAnalysis(
        name=name,
        path=package_dir.as_posix(),
        severity=summarize_severity(findings, install, test),
        summary_lines=build_summary_lines(repo, findings, install, test),
        findings=findings,
        install=install,
        test=test,
        repo=repo,
        usage=usage,
    )


def finalize_package(
    pkg: PackageAnalysis, opts: ScanOptions
) -> tuple[PackageAnalysis, PolicySummary]:
    """Apply ``ignoreFindings`` and policy, then recompute the severity."""
    findings = drop_ignored(pkg.findings, opts.config.ignore_findings)
    findings, summary = apply_policy(findings, opts.policy)
    severity = summarize_severity(findings, pkg.install, pkg.test)
    return pkg.model_copy(update={"findings": findings, "severity": severity}), summary


def merge_policy_summaries(summaries: list[PolicySummary]) -> PolicySummary:
    merged = PolicySummary()
    for s in summaries:
        merged.rules_applied += s.rules_applied
        merged.findings_modified += s.findings_modified
        merged.findings_disabled += s.findings_disabled
        merged.severity_upgraded += s.severity_upgraded
        merged.severity_downgraded += s.severity_downgraded
        merged.rules.extend(s.rules)
    return merged


async def select_packages(root: Path, opts: ScanOptions) -> list[WorkspacePackage]:
    if not opts.scope.includes_packages:
        return []
    ignored = set(opts.config.ignore_packages)
    packages = [p for p in discover_workspaces(root) if p.name not in ignored]
    if opts.since is not None:
        changed = await git_changed_paths(root, opts.since)
        packages = filter_changed(packages, changed)
        logger.info("%d package(s) changed since %s", len(packages), opts.since)
    return packages


async def scan(opts: ScanOptions) -> ScanResult:
    """Scan the root and its workspace packages one at a time, in name order."""
    root = opts.root.resolve()
    bun_available = is_bun_available()
    if (opts.run_install or opts.run_test) and not bun_available:
        logger.warning("bun was not found on PATH; skipping install and test steps")

    summaries: list[PolicySummary] = []
    root_analysis: PackageAnalysis | None = None
    if opts.scope.includes_root:
        raw = await analyze_package("root", root, opts, bun_available)
        root_analysis, summary = finalize_package(raw, opts)
        summaries.append(summary)

    packages: list[PackageAnalysis] = []
    for ws in await select_packages(root, opts):
        raw = await analyze_package(ws.name, ws.path, opts, bun_available)
        pkg, summary = finalize_package(raw, opts)
        packages.append(pkg)
        summaries.append(summary)

    if root_analysis is not None:
        root_severity = root_analysis.severity
        result = ScanResult(
            repo_path=root.as_posix(),
            summary_lines=list(root_analysis.summary_lines),
            findings=root_analysis.findings,
            install=root_analysis.install,
            test=root_analysis.test,
            repo=root_analysis.repo,
            usage=root_analysis.usage,
            packages=packages,
        )
    else:
        root_severity = Severity.GREEN
        result = ScanResult(
            repo_path=root.as_posix(),
            repo=read_repo_info(root),
            packages=packages,
        )
    if packages:
        result.summary_lines.append(f"Workspace packages scanned: {len(packages)}")

    result.severity = aggregate_severity(root_severity, packages)

    policy_summary = merge_policy_summaries(summaries)
    thresholds = opts.policy.thresholds
    if thresholds is not None:
        metrics = calculate_baseline_metrics(result.all_findings, packages)
        policy_summary.rules_applied += len(package_threshold_breaches(thresholds, metrics))
    if opts.policy.rules or thresholds is not None:
        result.policy = policy_summary

    result.threshold_verdict, result.threshold_reasons = check_thresholds(
        result.all_findings, thresholds, packages
    )

    if opts.baseline is not None:
        result.baseline = compare_findings(
            opts.baseline.findings, fingerprints_for_result(result)
        )

    result.exit_code = resolve_exit_code(
        result.severity,
        opts.policy.fail_on,
        result.threshold_verdict,
        regression=result.baseline is not None and result.baseline.is_regression,
    )
    return result


def run_scan(opts: ScanOptions) -> ScanResult:
    return asyncio.run(scan(opts))
