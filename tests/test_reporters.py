"""Tests for report renderers."""

import json

from rich.console import Console

from bun_ready.config import BunReadyConfig
from bun_ready.models import (
    BaselineComparison,
    Finding,
    PackageAnalysis,
    PackageUsage,
    PolicySummary,
    RepoInfo,
    ScanResult,
    Severity,
    StepResult,
    StepStatus,
)
from bun_ready.reporters.json_report import render_json
from bun_ready.reporters.markdown import render_markdown
from bun_ready.reporters.sarif import package_uri, scan_result_to_sarif
from bun_ready.reporters.terminal import render_terminal


def _make_finding(id, severity, details=None, hints=None):
    return Finding(
        id=id, title=f"Title {id}", severity=severity,
        details=details or [f"detail {id}"], hints=hints or [f"hint {id}"],
    )


def _make_result():
    return ScanResult(
        repo_path="/repo",
        severity=Severity.RED,
        summary_lines=["Lockfiles: bun"],
        findings=[
            _make_finding("lockfile.migration", Severity.YELLOW),
            _make_finding("deps.native_addons", Severity.RED),
        ],
        repo=RepoInfo(package_json_path="/repo/package.json", name="mono", has_workspaces=True),
        install=StepResult(status=StepStatus.FAILED, summary="bun install --dry-run failed (exit 1)",
                           logs=["error: nope"]),
        packages=[
            PackageAnalysis(
                name="web", path="/repo/packages/web", severity=Severity.YELLOW,
                findings=[_make_finding("deps.native_addons", Severity.YELLOW)],
                usage=PackageUsage(analyzed_files=2, files_by_package={"lodash": ["a.js"]}),
            ),
            PackageAnalysis(name="api", path="/repo/packages/api", severity=Severity.GREEN),
        ],
        policy=PolicySummary(rules_applied=1, findings_disabled=1),
        threshold_verdict=Severity.YELLOW,
        threshold_reasons=["Too many warnings (2 > 1)"],
        baseline=BaselineComparison(is_regression=True, regression_reasons=["New RED findings detected: x"]),
        exit_code=3,
    )


def test_markdown_sections():
    md = render_markdown(_make_result(), BunReadyConfig(ignore_findings=["api.node_prefix"]))
    assert md.startswith("# bun-ready report")
    assert "**Overall:** 🔴 RED" in md
    assert "| 🔴 Red | 1 |" in md
    assert "- Lockfiles: bun" in md
    assert "- Ignored findings: api.node_prefix" in md
    assert "- Name: mono" in md
    assert "## Policy" in md
    assert "- Too many warnings (2 > 1)" in md
    assert "  - New RED findings detected: x" in md
    assert "| web | `/repo/packages/web` | 🟡 YELLOW |" in md
    assert "error: nope" in md
    assert "## Package: api (🟢 GREEN)" in md
    assert "No findings for this package." in md


def test_markdown_orders_findings_worst_first():
    md = render_markdown(_make_result())
    assert md.index("Title deps.native_addons (🔴 RED)") < md.index("Title lockfile.migration")


def test_markdown_default_config_and_usage():
    result = _make_result()
    md = render_markdown(result, BunReadyConfig())
    assert "- Using default configuration" in md
    assert "**lodash**" not in md

    detailed = render_markdown(result, detailed=True)
    assert "- **lodash** (1 file)" in detailed
    assert "  - a.js" in detailed


def test_markdown_empty_result():
    md = render_markdown(ScanResult())
    assert "No findings for root package." in md
    assert "Ready to migrate" in md


def test_json_is_camel_case_and_sorted():
    data = json.loads(render_json(_make_result()))
    assert data["version"] == "0.3"
    assert data["exitCode"] == 3
    assert data["repoPath"] == "/repo"
    assert data["thresholdVerdict"] == "yellow"
    assert data["policy"]["findingsDisabled"] == 1
    assert data["baseline"]["isRegression"] is True
    assert [f["id"] for f in data["findings"]] == ["deps.native_addons", "lockfile.migration"]
    assert data["packages"][0]["usage"]["filesByPackage"] == {"lodash": ["a.js"]}
    assert "test" not in data


def test_sarif_structure():
    sarif = scan_result_to_sarif(_make_result())
    assert sarif["version"] == "2.1.0"
    run = sarif["runs"][0]
    assert run["tool"]["driver"]["name"] == "bun-ready"
    assert [r["id"] for r in run["tool"]["driver"]["rules"]] == [
        "deps.native_addons", "lockfile.migration",
    ]

    results = run["results"]
    assert len(results) == 3
    levels = {(r["ruleId"], r["properties"]["package"]): r["level"] for r in results}
    assert levels[("deps.native_addons", "root")] == "error"
    assert levels[("deps.native_addons", "web")] == "warning"
    assert levels[("lockfile.migration", "root")] == "warning"

    uris = {r["properties"]["package"]: r["locations"][0]["physicalLocation"]["artifactLocation"]["uri"] for r in results}
    assert uris == {"root": "package.json", "web": "packages/web/package.json"}
    assert results[0]["message"]["text"].startswith("Title lockfile.migration")


def test_sarif_green_is_note():
    result = ScanResult(findings=[_make_finding("api.node_prefix", Severity.GREEN)])
    assert scan_result_to_sarif(result)["runs"][0]["results"][0]["level"] == "note"


def test_package_uri_outside_repo():
    pkg = PackageAnalysis(name="ext", path="/elsewhere/ext", severity=Severity.GREEN)
    assert package_uri("/repo", pkg) == "ext"


def test_terminal_renders():
    console = Console(record=True, width=120)
    render_terminal(_make_result(), console)
    text = console.export_text()
    assert "bun-ready: /repo" in text
    assert "deps.native_addons" in text
    assert "Threshold:" in text
    assert "Regression:" in text


def test_terminal_no_findings():
    console = Console(record=True, width=120)
    render_terminal(ScanResult(), console)
    assert "No findings." in console.export_text()
