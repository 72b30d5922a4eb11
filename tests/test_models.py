"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from bun_ready.models import (
    BaselineMetrics,
    Finding,
    FindingFingerprint,
    FindingsSummary,
    PackageAnalysis,
    ScanResult,
    Severity,
    StepResult,
    StepStatus,
    max_severity,
)


def _make_finding(id="x.test", severity=Severity.YELLOW, details=None):
    return Finding(id=id, title="Test", severity=severity, details=details or [])


def test_severity_rank_order():
    assert Severity.GREEN.rank < Severity.YELLOW.rank < Severity.RED.rank


def test_severity_compares_by_rank_not_text():
    assert Severity.RED > Severity.YELLOW > Severity.GREEN
    assert Severity.GREEN < Severity.RED
    assert Severity.YELLOW <= Severity.YELLOW
    assert Severity.YELLOW >= Severity.GREEN
    assert max(Severity.GREEN, Severity.RED, Severity.YELLOW) is Severity.RED
    assert sorted([Severity.RED, Severity.GREEN, Severity.YELLOW]) == [
        Severity.GREEN, Severity.YELLOW, Severity.RED,
    ]


def test_severity_upgrade_and_downgrade_saturate():
    assert Severity.GREEN.upgrade() is Severity.YELLOW
    assert Severity.YELLOW.upgrade() is Severity.RED
    assert Severity.RED.upgrade() is Severity.RED
    assert Severity.RED.downgrade() is Severity.YELLOW
    assert Severity.YELLOW.downgrade() is Severity.GREEN
    assert Severity.GREEN.downgrade() is Severity.GREEN


def test_max_severity():
    assert max_severity() is Severity.GREEN
    assert max_severity(Severity.YELLOW, Severity.GREEN) is Severity.YELLOW
    assert max_severity(Severity.GREEN, Severity.RED, Severity.YELLOW) is Severity.RED


def test_finding_is_frozen():
    f = _make_finding()
    with pytest.raises(ValidationError):
        f.severity = Severity.RED


def test_findings_summary_from_findings():
    summary = FindingsSummary.from_findings([
        _make_finding(severity=Severity.RED),
        _make_finding(severity=Severity.RED),
        _make_finding(severity=Severity.YELLOW),
    ])
    assert summary.red == 2
    assert summary.yellow == 1
    assert summary.green == 0
    assert summary.total == 3


def test_step_result_ok_is_tristate():
    assert StepResult(status=StepStatus.OK, summary="").ok is True
    assert StepResult(status=StepStatus.FAILED, summary="").ok is False
    assert StepResult(status=StepStatus.TIMED_OUT, summary="").ok is None


def test_fingerprint_key_excludes_severity():
    a = FindingFingerprint(id="x", severity=Severity.YELLOW, details_hash="h1")
    b = FindingFingerprint(id="x", severity=Severity.RED, details_hash="h1")
    assert a.key == b.key == "x:root:h1"


def test_camel_case_round_trip():
    fp = FindingFingerprint(id="x", package_name="pkg", severity=Severity.RED, details_hash="h")
    data = fp.to_json_dict()
    assert data == {"id": "x", "packageName": "pkg", "severity": "red", "detailsHash": "h"}
    assert FindingFingerprint.model_validate(data) == fp


def test_metrics_accept_snake_case():
    m = BaselineMetrics.model_validate({"total_findings": 3, "redCount": 1})
    assert m.total_findings == 3
    assert m.red_count == 1


def test_scan_result_all_findings_includes_packages():
    result = ScanResult(
        findings=[_make_finding(id="a")],
        packages=[
            PackageAnalysis(
                name="pkg", path="/r/pkg", severity=Severity.RED,
                findings=[_make_finding(id="b", severity=Severity.RED)],
            ),
        ],
    )
    assert [f.id for f in result.all_findings] == ["a", "b"]
    assert result.summary.total == 1


def test_scan_result_json_has_version():
    data = ScanResult().to_json_dict()
    assert data["version"] == "0.3"
    assert data["exitCode"] == 0
    assert "policy" not in data
