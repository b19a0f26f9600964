from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from safepost.domain.types import AnalysisResult, ImageAttachment, RewriteSet, SavedComplianceCheck, UsageSummary
from safepost.services.analysis.normalizer import result_from_dict


class UsageResponse(BaseModel):
    checks_used: int
    limit: int | None
    remaining: int | None
    at_limit: bool


class ImagePayload(BaseModel):
    mime_type: str = Field(min_length=1, max_length=64)
    data_base64: str = Field(min_length=1)

    model_config = {"extra": "forbid"}

    def to_attachment(self) -> ImageAttachment:
        return ImageAttachment(mime_type=self.mime_type, data_base64=self.data_base64)


class IssuePayload(BaseModel):
    guideline_reference: str = ""
    finding: str
    severity: str
    recommendation: str = ""


class IssueResponse(BaseModel):
    guideline_reference: str
    finding: str
    severity: str
    recommendation: str


class DisplayResponse(BaseModel):
    # Issues in display order (Critical first) plus derived counters.
    issues: list[IssueResponse]
    critical_count: int
    warning_count: int
    default_expanded_index: int | None


class CheckResponse(BaseModel):
    id: str
    created_at: str
    content_text: str
    content_type: str
    platform: str
    overall_status: str
    compliance_score: int
    result: dict[str, Any]
    notes: str | None
    display: DisplayResponse
    usage: UsageResponse | None = None


class RewriteOptionResponse(BaseModel):
    option_title: str
    content: str
    explanation: str


class RewriteSetResponse(BaseModel):
    count: int
    options: list[RewriteOptionResponse]


def to_check_response(
    saved: SavedComplianceCheck,
    *,
    result: AnalysisResult | None = None,
    usage: UsageSummary | None = None,
) -> CheckResponse:
    result = result or result_from_dict(saved.result_json)
    return CheckResponse(
        id=saved.id,
        created_at=saved.created_at.isoformat(),
        content_text=saved.content_text,
        content_type=saved.content_type,
        platform=saved.platform,
        overall_status=saved.overall_status,
        compliance_score=saved.compliance_score,
        result=saved.result_json,
        notes=saved.notes,
        display=DisplayResponse(**result.display_view()),
        usage=UsageResponse(**usage.to_dict()) if usage is not None else None,
    )


def to_rewrite_response(rewrites: RewriteSet) -> RewriteSetResponse:
    return RewriteSetResponse(
        count=len(rewrites),
        options=[RewriteOptionResponse(**option) for option in rewrites.to_list()],
    )
