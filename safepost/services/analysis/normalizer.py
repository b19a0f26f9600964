from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any, Mapping

from safepost.core.errors import (
    ContentOutOfScope,
    ContractViolation,
    EngineContractViolation,
    UnknownSeverity,
)
from safepost.domain.types import AnalysisResult, ComplianceIssue, OverallStatus, Severity


CRITICAL_PENALTY = 25
WARNING_PENALTY = 10
REVIEW_SCORE = 70

_SEVERITIES = {
    "critical": Severity.CRITICAL,
    "warning": Severity.WARNING,
}

_STATUSES = {
    "compliant": OverallStatus.COMPLIANT,
    "non_compliant": OverallStatus.NON_COMPLIANT,
    "noncompliant": OverallStatus.NON_COMPLIANT,
    "requires_review": OverallStatus.REQUIRES_REVIEW,
    "warning": OverallStatus.REQUIRES_REVIEW,
    "review": OverallStatus.REQUIRES_REVIEW,
}

_OUT_OF_SCOPE_STATUSES = {"not_healthcare"}


def extract_json(text: str, *, opener: str = "{", closer: str = "}") -> Any:
    """Parse the outermost JSON block of ``text``.

    Models sometimes wrap the document in prose or a markdown fence, so the
    span from the first ``opener`` to the last ``closer`` is parsed.
    """
    if not isinstance(text, str):
        raise EngineContractViolation("Engine response is not text")
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        raise EngineContractViolation("No JSON document found in engine response")
    try:
        return json.loads(text[start : end + 1])
    except ValueError as exc:
        raise EngineContractViolation("Engine response is not valid JSON") from exc


def normalize_severity(value: Any) -> Severity:
    # Exhaustive match over the closed set; nothing is ever defaulted.
    if isinstance(value, Severity):
        return value
    if isinstance(value, str):
        severity = _SEVERITIES.get(value.strip().lower())
        if severity is not None:
            return severity
    raise UnknownSeverity(f"Unknown issue severity: {value!r}")


def _status_key(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def normalize_status(value: Any) -> OverallStatus:
    if isinstance(value, OverallStatus):
        return value
    if isinstance(value, str):
        status = _STATUSES.get(_status_key(value))
        if status is not None:
            return status
    raise EngineContractViolation(f"Unknown overall status: {value!r}")


def _optional_text(raw: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise EngineContractViolation(f"Issue field {key!r} must be a string")
        return value.strip()
    return ""


def normalize_issue(raw: Any) -> ComplianceIssue:
    if not isinstance(raw, Mapping):
        raise EngineContractViolation("Each issue must be a JSON object")
    finding = _optional_text(raw, "finding")
    if not finding:
        raise EngineContractViolation("Issue is missing its finding")
    return ComplianceIssue(
        guideline_reference=_optional_text(raw, "guideline_reference", "guidelineReference"),
        finding=finding,
        severity=normalize_severity(raw.get("severity")),
        recommendation=_optional_text(raw, "recommendation"),
    )


def derive_score(status: OverallStatus, issues: tuple[ComplianceIssue, ...]) -> int:
    # Only a non_compliant verdict is penalised per issue.
    if status is OverallStatus.COMPLIANT:
        return 100
    if status is OverallStatus.REQUIRES_REVIEW:
        return REVIEW_SCORE
    critical = sum(1 for issue in issues if issue.is_critical)
    warning = len(issues) - critical
    return max(0, 100 - CRITICAL_PENALTY * critical - WARNING_PENALTY * warning)


def _normalize_score(value: Any, status: OverallStatus, issues: tuple[ComplianceIssue, ...]) -> int:
    if value is None:
        return derive_score(status, issues)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise EngineContractViolation(f"compliance_score must be a number, got {value!r}")
    return int(round(min(100.0, max(0.0, float(value)))))


def validate_verdict(status: OverallStatus, issues: tuple[ComplianceIssue, ...]) -> None:
    """Reject status/issue combinations that contradict each other."""
    has_critical = any(issue.is_critical for issue in issues)
    if status is OverallStatus.NON_COMPLIANT and not has_critical:
        raise ContractViolation("non_compliant verdict must include at least one Critical issue")
    if status is not OverallStatus.NON_COMPLIANT and has_critical:
        # A Critical finding under a softer verdict would understate the risk.
        raise ContractViolation(f"{status.value} verdict must not include Critical issues")


def _string_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise EngineContractViolation("compliant_elements must be a list of strings")
    return tuple(item.strip() for item in value if item.strip())


def _parse_checked_at(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def normalize(raw: Mapping[str, Any], *, checked_at: datetime | None = None) -> AnalysisResult:
    """Validate and repair a raw engine document into an ``AnalysisResult``.

    Missing optional text fields are repaired to empty values. Anything that
    changes the meaning of the verdict (unknown status or severity, malformed
    issues, contradictory status) fails loudly instead of being defaulted.
    """
    if not isinstance(raw, Mapping):
        raise EngineContractViolation("Engine verdict must be a JSON object")

    raw_status = raw.get("overall_status", raw.get("status"))
    if isinstance(raw_status, str) and _status_key(raw_status) in _OUT_OF_SCOPE_STATUSES:
        summary = raw.get("summary")
        raise ContentOutOfScope(
            summary if isinstance(summary, str) and summary.strip()
            else "Content does not appear to be healthcare-related"
        )
    status = normalize_status(raw_status)

    raw_issues = raw.get("issues")
    if raw_issues is None:
        raw_issues = []
    if not isinstance(raw_issues, list):
        raise EngineContractViolation("issues must be a JSON array")
    issues = tuple(normalize_issue(item) for item in raw_issues)
    validate_verdict(status, issues)

    summary = raw.get("summary")
    if summary is not None and not isinstance(summary, str):
        raise EngineContractViolation("summary must be a string")
    verdict = raw.get("overall_verdict", raw.get("overallVerdict"))
    if verdict is not None and not isinstance(verdict, str):
        raise EngineContractViolation("overall_verdict must be a string")

    return AnalysisResult(
        overall_status=status,
        summary=(summary or "").strip(),
        issues=issues,
        compliance_score=_normalize_score(raw.get("compliance_score"), status, issues),
        overall_verdict=(verdict or "").strip(),
        compliant_elements=_string_list(raw.get("compliant_elements")),
        checked_at=checked_at or _parse_checked_at(raw.get("checked_at")) or datetime.now(timezone.utc),
    )


def parse_engine_text(text: str) -> AnalysisResult:
    return normalize(extract_json(text))


def result_from_dict(data: Mapping[str, Any]) -> AnalysisResult:
    # Rehydrate a persisted verdict through the same validation path.
    return normalize(data)
