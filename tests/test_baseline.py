"""Tests for fingerprints and baseline storage."""

import json

from bun_ready.baseline import (
    BaselineStatus,
    build_baseline,
    calculate_baseline_metrics,
    compare_findings,
    create_finding_fingerprint,
    fingerprints_for_result,
    read_baseline,
    save_baseline,
    update_baseline,
)
from bun_ready.models import (
    BaselineData,
    BaselineMetrics,
    Finding,
    FindingFingerprint,
    PackageAnalysis,
    ScanResult,
    Severity,
)


def _make_finding(id="x", severity=Severity.YELLOW, details=None):
    return Finding(id=id, title="t", severity=severity, details=details or ["a"])


def _fp(id, severity, details_hash, package_name="root"):
    return FindingFingerprint(
        id=id, package_name=package_name, severity=severity, details_hash=details_hash
    )


def test_fingerprint_is_stable():
    f = _make_finding(details=["A", "b"])
    assert create_finding_fingerprint(f) == create_finding_fingerprint(f)


def test_fingerprint_ignores_detail_order_and_case():
    a = create_finding_fingerprint(_make_finding(details=["A", "b"]))
    b = create_finding_fingerprint(_make_finding(details=["b ", "a"]))
    assert a.details_hash == b.details_hash


def test_fingerprint_defaults_to_root_package():
    fp = create_finding_fingerprint(_make_finding())
    assert fp.package_name == "root"
    assert create_finding_fingerprint(_make_finding(), "web").package_name == "web"


def test_compare_identical_sets_is_empty():
    fps = [_fp("x", Severity.YELLOW, "h1"), _fp("y", Severity.RED, "h2")]
    cmp = compare_findings(fps, list(fps))
    assert cmp.new_findings == []
    assert cmp.resolved_findings == []
    assert cmp.severity_changes == []
    assert cmp.is_regression is False
    assert cmp.regression_reasons == []


def test_new_red_finding_is_regression():
    baseline = [_fp("x", Severity.YELLOW, "h1")]
    current = baseline + [_fp("y", Severity.RED, "h2")]
    cmp = compare_findings(baseline, current)
    assert len(cmp.new_findings) == 1
    assert cmp.is_regression is True
    assert len(cmp.regression_reasons) == 1
    assert "New RED findings" in cmp.regression_reasons[0]


def test_new_yellow_finding_is_not_regression():
    cmp = compare_findings([], [_fp("y", Severity.YELLOW, "h2")])
    assert len(cmp.new_findings) == 1
    assert cmp.is_regression is False


def test_severity_upgrade_to_red_is_regression():
    cmp = compare_findings([_fp("x", Severity.YELLOW, "h1")], [_fp("x", Severity.RED, "h1")])
    assert cmp.new_findings == []
    assert cmp.resolved_findings == []
    assert len(cmp.severity_changes) == 1
    change = cmp.severity_changes[0]
    assert change.old_severity is Severity.YELLOW
    assert change.new_severity is Severity.RED
    assert cmp.is_regression is True
    assert "Severity upgraded to RED" in cmp.regression_reasons[0]


def test_severity_downgrade_is_not_regression():
    cmp = compare_findings([_fp("x", Severity.RED, "h1")], [_fp("x", Severity.YELLOW, "h1")])
    assert len(cmp.severity_changes) == 1
    assert cmp.is_regression is False


def test_package_move_is_new_plus_resolved():
    cmp = compare_findings(
        [_fp("x", Severity.YELLOW, "h1", "pkg1")],
        [_fp("x", Severity.YELLOW, "h1", "pkg2")],
    )
    assert [fp.package_name for fp in cmp.new_findings] == ["pkg2"]
    assert [fp.package_name for fp in cmp.resolved_findings] == ["pkg1"]
    assert cmp.severity_changes == []


def test_save_then_load_round_trip(tmp_path):
    data = BaselineData(
        scan_version="0.3.0",
        repo_path="/repo",
        findings=[_fp("x", Severity.YELLOW, "h1"), _fp("y", Severity.RED, "h2", "web")],
        metrics=BaselineMetrics(total_findings=2, yellow_count=1, red_count=1),
    )
    path = tmp_path / "baseline.json"
    save_baseline(data, path)

    raw = json.loads(path.read_text())
    assert raw["version"] == "0.3"
    assert raw["findings"][1]["packageName"] == "web"
    assert raw["metrics"]["totalFindings"] == 2

    assert read_baseline(path).data == data


def test_read_baseline_missing(tmp_path):
    loaded = read_baseline(tmp_path / "nope.json")
    assert loaded.status is BaselineStatus.NOT_FOUND
    assert loaded.data is None


def test_read_baseline_malformed_json(tmp_path):
    path = tmp_path / "b.json"
    path.write_text("{not json")
    loaded = read_baseline(path)
    assert loaded.status is BaselineStatus.INVALID
    assert loaded.error


def test_read_baseline_wrong_shape(tmp_path):
    path = tmp_path / "b.json"
    path.write_text(json.dumps({"version": "0.3", "findings": []}))
    assert read_baseline(path).status is BaselineStatus.INVALID


def test_read_baseline_bad_fingerprint(tmp_path):
    path = tmp_path / "b.json"
    path.write_text(json.dumps({
        "version": "0.3",
        "timestamp": "2024-01-01T00:00:00+00:00",
        "findings": [{"id": "x", "severity": "purple", "detailsHash": "h"}],
    }))
    assert read_baseline(path).status is BaselineStatus.INVALID


def test_calculate_metrics():
    findings = [_make_finding(severity=Severity.RED), _make_finding(severity=Severity.GREEN)]
    packages = [
        PackageAnalysis(name="a", path="/a", severity=Severity.YELLOW),
        PackageAnalysis(name="b", path="/b", severity=Severity.YELLOW),
    ]
    m = calculate_baseline_metrics(findings, packages)
    assert m.total_findings == 2
    assert m.red_count == 1
    assert m.green_count == 1
    assert m.packages_yellow == 2
    assert m.packages_red == 0


def _make_result():
    return ScanResult(
        repo_path="/repo",
        findings=[_make_finding("root.one")],
        packages=[
            PackageAnalysis(
                name="web", path="/repo/web", severity=Severity.RED,
                findings=[_make_finding("pkg.one", Severity.RED)],
            ),
        ],
    )


def test_fingerprints_for_result_covers_packages():
    fps = fingerprints_for_result(_make_result())
    assert {(fp.package_name, fp.id) for fp in fps} == {("root", "root.one"), ("web", "pkg.one")}


def test_build_and_update_baseline():
    result = _make_result()
    data = build_baseline(result, scan_version="0.3.0")
    assert data.repo_path == "/repo"
    assert data.metrics.total_findings == 2
    assert data.metrics.packages_red == 1

    updated = update_baseline(data, [], metrics=BaselineMetrics())
    assert updated.findings == []
    assert updated.metrics.total_findings == 0
    assert updated.scan_version == "0.3.0"
    assert len(data.findings) == 2
