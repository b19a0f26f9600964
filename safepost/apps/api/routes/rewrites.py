from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from safepost.apps.api.deps import Principal, get_current_principal, get_pipeline
from safepost.apps.api.openapi import CHECK_ERROR_RESPONSES
from safepost.apps.api.response import SuccessEnvelope, success_response
from safepost.apps.api.routes.schemas import IssuePayload, RewriteSetResponse, to_rewrite_response
from safepost.core.errors import EngineContractViolation, InvalidInput
from safepost.domain.types import ComplianceIssue
from safepost.services.analysis.normalizer import normalize_issue
from safepost.services.pipeline import CompliancePipeline


router = APIRouter(prefix="/rewrites", tags=["rewrites"], responses=CHECK_ERROR_RESPONSES)


class RewriteRequest(BaseModel):
    content: str
    issues: list[IssuePayload] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


def _to_issues(payload: RewriteRequest) -> list[ComplianceIssue]:
    # Issues here come from the caller, so a bad severity is a client error.
    try:
        return [normalize_issue(issue.model_dump()) for issue in payload.issues]
    except EngineContractViolation as exc:
        raise InvalidInput(str(exc)) from exc


@router.post("", response_model=SuccessEnvelope[RewriteSetResponse])
async def create_rewrites(
    request: Request,
    payload: RewriteRequest,
    _principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    rewrites = await pipeline.generate_rewrites(payload.content, _to_issues(payload))
    return success_response(request=request, data=to_rewrite_response(rewrites))
