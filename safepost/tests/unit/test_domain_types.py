from __future__ import annotations

from datetime import datetime, timezone

import pytest

from safepost.domain.types import (
    AnalysisResult,
    ComplianceIssue,
    OverallStatus,
    RewriteSet,
    RewrittenPost,
    Severity,
    order_issues,
)


def _issue(severity: Severity, finding: str) -> ComplianceIssue:
    return ComplianceIssue(guideline_reference="ref", finding=finding, severity=severity, recommendation="")


def test_order_issues_never_puts_warning_before_critical() -> None:
    issues = [
        _issue(Severity.WARNING, "a"),
        _issue(Severity.WARNING, "b"),
        _issue(Severity.CRITICAL, "c"),
        _issue(Severity.WARNING, "d"),
        _issue(Severity.CRITICAL, "e"),
    ]
    ordered = order_issues(issues)
    severities = [item.severity for item in ordered]
    assert severities == sorted(severities, key=lambda value: value is not Severity.CRITICAL)
    assert [item.finding for item in ordered] == ["c", "e", "a", "b", "d"]


def test_display_view_is_derived_from_issues() -> None:
    result = AnalysisResult(
        overall_status=OverallStatus.NON_COMPLIANT,
        summary="s",
        issues=(_issue(Severity.WARNING, "w"), _issue(Severity.CRITICAL, "c")),
        compliance_score=65,
        checked_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    view = result.display_view()
    assert [item["finding"] for item in view["issues"]] == ["c", "w"]
    assert view["critical_count"] == 1
    assert view["warning_count"] == 1
    assert view["default_expanded_index"] == 0
    assert result.to_dict()["checked_at"] == "2026-01-01T00:00:00+00:00"


def test_empty_rewrite_set_has_no_option() -> None:
    with pytest.raises(IndexError):
        RewriteSet(options=()).option_at(0)


def test_rewrite_set_cycles() -> None:
    options = tuple(RewrittenPost(option_title=str(i), content="x", explanation="") for i in range(4))
    rewrites = RewriteSet(options=options)
    assert [rewrites.option_at(i).option_title for i in range(6)] == ["0", "1", "2", "3", "0", "1"]
