from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"


class OverallStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    # Canonical third status; the engine's "warning" is folded into this value.
    REQUIRES_REVIEW = "requires_review"


class ContentType(str, Enum):
    SOCIAL_MEDIA_POST = "social_media_post"
    ONLINE_ADVERTISEMENT = "online_advertisement"
    WEBSITE_CONTENT = "website_content"
    EMAIL_NEWSLETTER = "email_newsletter"
    PRINT_MATERIAL = "print_material"


@dataclass(frozen=True)
class GuidelineRecord:
    id: str
    category: str
    subcategory: str
    source_document: str
    section_reference: str
    rule_text: str
    plain_english_summary: str
    recommended_action: str

    @property
    def citation(self) -> str:
        return f"{self.source_document} {self.section_reference}".strip()

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "category": self.category,
            "subcategory": self.subcategory,
            "source_document": self.source_document,
            "section_reference": self.section_reference,
            "rule_text": self.rule_text,
            "plain_english_summary": self.plain_english_summary,
            "recommended_action": self.recommended_action,
        }


@dataclass(frozen=True)
class ImageAttachment:
    mime_type: str
    data_base64: str


@dataclass(frozen=True)
class ComplianceIssue:
    guideline_reference: str
    finding: str
    severity: Severity
    recommendation: str

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL

    def to_dict(self) -> dict[str, str]:
        return {
            "guideline_reference": self.guideline_reference,
            "finding": self.finding,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
        }


def _severity_rank(issue: ComplianceIssue) -> int:
    return 0 if issue.severity is Severity.CRITICAL else 1


def order_issues(issues: tuple[ComplianceIssue, ...] | list[ComplianceIssue]) -> list[ComplianceIssue]:
    """Return issues in display order.

    Critical findings come first; issues of equal severity keep the order the
    engine returned them in (``sorted`` is stable).
    """
    return sorted(issues, key=_severity_rank)


@dataclass(frozen=True)
class AnalysisResult:
    """Normalized verdict for one submitted content item.

    ``issues`` keeps the engine's order. Display order and the severity counts
    are derived on every read and never stored.
    """

    overall_status: OverallStatus
    summary: str
    issues: tuple[ComplianceIssue, ...]
    compliance_score: int
    overall_verdict: str = ""
    compliant_elements: tuple[str, ...] = ()
    checked_at: datetime | None = None

    @property
    def display_issues(self) -> list[ComplianceIssue]:
        return order_issues(self.issues)

    @property
    def critical_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is Severity.CRITICAL)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is Severity.WARNING)

    @property
    def default_expanded_index(self) -> int | None:
        # Only a leading Critical issue opens by default.
        ordered = self.display_issues
        if ordered and ordered[0].is_critical:
            return 0
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_status": self.overall_status.value,
            "summary": self.summary,
            "overall_verdict": self.overall_verdict,
            "compliance_score": self.compliance_score,
            "issues": [issue.to_dict() for issue in self.issues],
            "compliant_elements": list(self.compliant_elements),
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }

    def display_view(self) -> dict[str, Any]:
        # Presentation payload: ordered issues plus derived counters.
        return {
            "issues": [issue.to_dict() for issue in self.display_issues],
            "critical_count": self.critical_count,
            "warning_count": self.warning_count,
            "default_expanded_index": self.default_expanded_index,
        }


@dataclass(frozen=True)
class RewrittenPost:
    option_title: str
    content: str
    explanation: str

    def to_dict(self) -> dict[str, str]:
        return {
            "option_title": self.option_title,
            "content": self.content,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class RewriteSet:
    # A regeneration replaces the whole set; options are never merged.
    options: tuple[RewrittenPost, ...]

    def __len__(self) -> int:
        return len(self.options)

    def option_at(self, index: int) -> RewrittenPost:
        # Cycle through however many options were produced.
        if not self.options:
            raise IndexError("rewrite set is empty")
        return self.options[index % len(self.options)]

    def to_list(self) -> list[dict[str, str]]:
        return [option.to_dict() for option in self.options]


@dataclass(frozen=True)
class PlanEntitlement:
    plan_key: str
    tier_rank: int
    display_name: str
    tier_label: str
    # None means unlimited.
    monthly_check_limit: int | None
    max_team_members: int
    image_attachment: bool
    pdf_export: bool
    multi_user: bool
    bulk_review: bool

    def capabilities(self) -> dict[str, bool]:
        return {
            "image_attachment": self.image_attachment,
            "pdf_export": self.pdf_export,
            "multi_user": self.multi_user,
            "bulk_review": self.bulk_review,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_key": self.plan_key,
            "display_name": self.display_name,
            "tier_label": self.tier_label,
            "monthly_check_limit": self.monthly_check_limit,
            "max_team_members": self.max_team_members,
            "capabilities": self.capabilities(),
        }


@dataclass(frozen=True)
class UsageSummary:
    checks_used: int
    limit: int | None
    remaining: int | None
    at_limit: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "checks_used": self.checks_used,
            "limit": self.limit,
            "remaining": self.remaining,
            "at_limit": self.at_limit,
        }


@dataclass(frozen=True)
class SavedComplianceCheck:
    id: str
    created_at: datetime
    user_id: str
    content_text: str
    content_type: str
    platform: str
    overall_status: str
    compliance_score: int
    result_json: dict[str, Any] = field(default_factory=dict)
    notes: str | None = None
