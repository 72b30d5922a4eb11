"""Tests for per-package analysis and scan orchestration."""

import json

import pytest

from bun_ready.analysis.scan import (
    ScanOptions,
    Scope,
    build_summary_lines,
    drop_ignored,
    merge_policy_summaries,
    read_repo_info,
    run_scan,
)
from bun_ready.baseline import build_baseline
from bun_ready.config import BunReadyConfig
from bun_ready.models import (
    BaselineData,
    Finding,
    FindingFingerprint,
    PolicySummary,
    PolicyThresholds,
    Severity,
    StepResult,
    StepStatus,
)
from bun_ready.policy import policy_from_cli


@pytest.fixture(autouse=True)
def no_bun(monkeypatch):
    monkeypatch.setattr("bun_ready.analysis.scan.is_bun_available", lambda: False)


def _write_pkg(path, data, lockfile="bun.lock"):
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps(data))
    if lockfile:
        (path / lockfile).write_text("")


def _make_monorepo(tmp_path):
    _write_pkg(tmp_path, {"name": "mono", "version": "1.0.0", "workspaces": ["packages/*"]})
    _write_pkg(tmp_path / "packages" / "web", {"name": "web", "dependencies": {"node-sass": "^9"}})
    _write_pkg(tmp_path / "packages" / "api", {"name": "api", "scripts": {"postinstall": "node x.js"}})
    _write_pkg(tmp_path / "packages" / "util", {"name": "util"})
    return tmp_path


def _opts(root, **kwargs):
    kwargs.setdefault("run_install", False)
    kwargs.setdefault("run_test", False)
    return ScanOptions(root=root, **kwargs)


def test_read_repo_info(tmp_path):
    _write_pkg(tmp_path, {
        "name": "demo",
        "version": "2.0.0",
        "scripts": {"build": "tsc", "bad": 3},
        "devDependencies": {"typescript": "^5"},
    }, lockfile="yarn.lock")
    repo = read_repo_info(tmp_path)
    assert repo.name == "demo"
    assert repo.version == "2.0.0"
    assert repo.scripts == {"build": "tsc"}
    assert repo.dev_dependencies == {"typescript": "^5"}
    assert repo.lockfiles.yarn_lock is True
    assert repo.lockfiles.has_bun is False


def test_missing_package_json_is_red(tmp_path):
    result = run_scan(_opts(tmp_path))
    assert result.severity is Severity.RED
    assert result.exit_code == 3
    finding = result.findings[0]
    assert finding.id == "repo.no_package_json"
    assert finding.details == [f"Expected at: {(tmp_path.resolve() / 'package.json').as_posix()}"]
    assert result.summary_lines == ["package.json not found"]


def test_clean_project_is_green(tmp_path):
    _write_pkg(tmp_path, {"name": "clean", "dependencies": {"react": "^18"}})
    result = run_scan(_opts(tmp_path))
    assert result.findings == []
    assert result.severity is Severity.GREEN
    assert result.exit_code == 0
    assert "bun install dry-run: skipped" in result.summary_lines
    assert result.policy is None


def test_monorepo_scan(tmp_path):
    result = run_scan(_opts(_make_monorepo(tmp_path)))
    assert [p.name for p in result.packages] == ["api", "util", "web"]
    severities = {p.name: p.severity for p in result.packages}
    assert severities == {"api": Severity.YELLOW, "util": Severity.GREEN, "web": Severity.RED}
    assert result.severity is Severity.RED
    assert "Workspace packages scanned: 3" in result.summary_lines
    assert result.exit_code == 3


def test_scope_root_skips_packages(tmp_path):
    result = run_scan(_opts(_make_monorepo(tmp_path), scope=Scope.ROOT))
    assert result.packages == []
    assert result.severity is Severity.GREEN


def test_scope_packages_skips_root_findings(tmp_path):
    _make_monorepo(tmp_path)
    (tmp_path / "bun.lock").unlink()
    result = run_scan(_opts(tmp_path, scope=Scope.PACKAGES))
    assert result.findings == []
    assert result.repo.name == "mono"
    assert len(result.packages) == 3


def test_ignore_packages_and_findings(tmp_path):
    config = BunReadyConfig(ignore_packages=["web"], ignore_findings=["scripts.lifecycle"])
    result = run_scan(_opts(_make_monorepo(tmp_path), config=config))
    assert [p.name for p in result.packages] == ["api", "util"]
    assert result.severity is Severity.GREEN


def test_native_addon_allowlist(tmp_path):
    config = BunReadyConfig(native_addon_allowlist=["node-sass"])
    result = run_scan(_opts(_make_monorepo(tmp_path), config=config, scope=Scope.PACKAGES))
    web = next(p for p in result.packages if p.name == "web")
    assert web.findings == []


def test_policy_applies_to_packages_and_recomputes_severity(tmp_path):
    policy = policy_from_cli(rules=["deps.native_addons=warn", "scripts.lifecycle=off"])
    result = run_scan(_opts(_make_monorepo(tmp_path), policy=policy))
    web = next(p for p in result.packages if p.name == "web")
    assert web.severity is Severity.YELLOW
    assert result.severity is Severity.YELLOW
    assert result.exit_code == 2
    assert result.policy.rules_applied == 2
    assert result.policy.findings_disabled == 1
    assert result.policy.severity_downgraded == 1


def test_fail_on_yellow(tmp_path):
    _write_pkg(tmp_path, {"name": "x"}, lockfile="package-lock.json")
    result = run_scan(_opts(tmp_path, policy=policy_from_cli(fail_on=Severity.YELLOW)))
    assert result.severity is Severity.YELLOW
    assert result.exit_code == 0

    result = run_scan(_opts(tmp_path, policy=policy_from_cli(fail_on=Severity.GREEN)))
    assert result.exit_code == 3


def test_threshold_breach_raises_exit_code(tmp_path):
    policy = policy_from_cli(max_packages_yellow=0)
    config = BunReadyConfig(ignore_packages=["web"])
    result = run_scan(_opts(_make_monorepo(tmp_path), policy=policy, config=config))
    assert result.severity is Severity.YELLOW
    assert result.threshold_verdict is Severity.YELLOW
    assert result.threshold_reasons == ["Too many yellow packages (1 > 0)"]
    assert result.exit_code == 2
    assert result.policy.rules_applied == 1


def test_thresholds_count_findings_after_policy(tmp_path):
    _write_pkg(tmp_path, {"name": "x"}, lockfile="package-lock.json")
    policy = policy_from_cli(rules=["lockfile.migration:downgrade"])
    policy.thresholds = PolicyThresholds(max_warnings=0)
    result = run_scan(_opts(tmp_path, policy=policy))
    assert result.severity is Severity.GREEN
    assert result.threshold_verdict is Severity.GREEN
    assert result.exit_code == 0


def test_baseline_regression(tmp_path):
    _make_monorepo(tmp_path)
    baseline = BaselineData(findings=[
        FindingFingerprint(id="scripts.lifecycle", package_name="api",
                           severity=Severity.YELLOW, details_hash="stale"),
    ])
    result = run_scan(_opts(tmp_path, baseline=baseline, scope=Scope.PACKAGES))
    assert result.baseline.is_regression is True
    assert len(result.baseline.resolved_findings) == 1
    assert any("deps.native_addons" in r for r in result.baseline.regression_reasons)
    assert result.exit_code == 3


def test_baseline_without_regression_keeps_exit_code(tmp_path):
    _write_pkg(tmp_path, {"name": "x"}, lockfile="package-lock.json")
    first = run_scan(_opts(tmp_path))

    result = run_scan(_opts(tmp_path, baseline=build_baseline(first)))
    assert result.baseline.new_findings == []
    assert result.baseline.is_regression is False
    assert result.exit_code == 2


def test_detailed_collects_usage(tmp_path):
    _write_pkg(tmp_path, {"name": "x", "dependencies": {"lodash": "4"}})
    (tmp_path / "index.js").write_text("const _ = require('lodash');\n")
    result = run_scan(_opts(tmp_path, detailed=True))
    assert result.usage.files_by_package == {"lodash": ["index.js"]}
    assert run_scan(_opts(tmp_path)).usage is None


def test_steps_skipped_when_bun_missing(tmp_path, caplog):
    _write_pkg(tmp_path, {"name": "x", "scripts": {"test": "bun test"}})
    result = run_scan(ScanOptions(root=tmp_path))
    assert result.install is None
    assert result.test is None
    assert "bun was not found" in caplog.text


def test_install_step_findings_flow_through_policy(tmp_path, monkeypatch):
    _write_pkg(tmp_path, {"name": "x"})

    async def fake_install(package_dir, timeout):
        return StepResult(
            status=StepStatus.OK,
            summary="bun install --dry-run succeeded",
            logs=["Blocked: lifecycle script for esbuild"],
        )

    monkeypatch.setattr("bun_ready.analysis.scan.is_bun_available", lambda: True)
    monkeypatch.setattr("bun_ready.analysis.scan.run_install_dry_run", fake_install)

    result = run_scan(ScanOptions(root=tmp_path, run_test=False))
    assert result.install.ok is True
    assert [f.id for f in result.findings] == ["install.blocked_scripts"]
    assert result.severity is Severity.RED

    policy = policy_from_cli(rules=["install.blocked_scripts=off"])
    result = run_scan(ScanOptions(root=tmp_path, run_test=False, policy=policy))
    assert result.severity is Severity.GREEN


def test_drop_ignored():
    findings = [Finding(id="a", title="a", severity=Severity.RED)]
    assert drop_ignored(findings, []) == findings
    assert drop_ignored(findings, ["a"]) == []


def test_build_summary_lines_timed_out(tmp_path):
    _write_pkg(tmp_path, {"name": "x"})
    repo = read_repo_info(tmp_path)
    lines = build_summary_lines(
        repo, [], StepResult(status=StepStatus.TIMED_OUT, summary=""), None
    )
    assert "bun install dry-run: timed out" in lines
    assert "Lockfiles: bun" in lines


def test_merge_policy_summaries():
    merged = merge_policy_summaries([
        PolicySummary(rules_applied=1, findings_disabled=1),
        PolicySummary(rules_applied=2, severity_upgraded=2),
    ])
    assert merged.rules_applied == 3
    assert merged.findings_disabled == 1
    assert merged.severity_upgraded == 2
