from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field

from safepost.apps.api.deps import Principal, get_current_principal, get_pipeline
from safepost.apps.api.openapi import CHECK_ERROR_RESPONSES
from safepost.apps.api.response import SuccessEnvelope, success_response
from safepost.apps.api.routes.schemas import (
    CheckResponse,
    ImagePayload,
    RewriteSetResponse,
    to_check_response,
    to_rewrite_response,
)
from safepost.services.pipeline import CheckSubmission, CompliancePipeline


router = APIRouter(prefix="/checks", tags=["checks"], responses=CHECK_ERROR_RESPONSES)


class CheckCreateRequest(BaseModel):
    content: str
    content_type: str
    platform: str | None = None
    image: ImagePayload | None = None

    model_config = {"extra": "forbid"}

    def to_submission(self) -> CheckSubmission:
        return CheckSubmission(
            content=self.content,
            content_type=self.content_type,
            platform=self.platform,
            image=self.image.to_attachment() if self.image else None,
        )


class BulkCheckRequest(BaseModel):
    items: list[CheckCreateRequest] = Field(min_length=1)

    model_config = {"extra": "forbid"}


class BulkItemError(BaseModel):
    code: str
    message: str
    retryable: bool


class BulkItemResponse(BaseModel):
    index: int
    ok: bool
    check: CheckResponse | None = None
    error: BulkItemError | None = None


class BulkCheckResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    items: list[BulkItemResponse]


class NotesPatchRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=5000)

    # Notes are the only mutable field on a saved check.
    model_config = {"extra": "forbid"}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[CheckResponse])
async def create_check(
    request: Request,
    payload: CheckCreateRequest,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    outcome = await pipeline.run_check(principal.user_id, principal.plan_key, payload.to_submission())
    data = to_check_response(outcome.check, result=outcome.result, usage=outcome.usage)
    return success_response(request=request, data=data)


@router.post("/bulk", response_model=SuccessEnvelope[BulkCheckResponse])
async def create_bulk_checks(
    request: Request,
    payload: BulkCheckRequest,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    outcomes = await pipeline.run_bulk(
        principal.user_id,
        principal.plan_key,
        [item.to_submission() for item in payload.items],
    )
    items: list[BulkItemResponse] = []
    for item in outcomes:
        if item.outcome is not None:
            check = to_check_response(item.outcome.check, result=item.outcome.result, usage=item.outcome.usage)
            items.append(BulkItemResponse(index=item.index, ok=True, check=check))
        else:
            error = item.error
            items.append(
                BulkItemResponse(
                    index=item.index,
                    ok=False,
                    error=BulkItemError(code=error.code, message=str(error), retryable=error.retryable),
                )
            )
    succeeded = sum(1 for item in items if item.ok)
    data = BulkCheckResponse(total=len(items), succeeded=succeeded, failed=len(items) - succeeded, items=items)
    return success_response(request=request, data=data)


@router.get("", response_model=SuccessEnvelope[list[CheckResponse]])
async def list_checks(
    request: Request,
    limit: int | None = Query(default=None, ge=1),
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    checks = await pipeline.history.list_by_user(principal.user_id, limit)
    return success_response(request=request, data=[to_check_response(check) for check in checks])


@router.get("/{check_id}", response_model=SuccessEnvelope[CheckResponse])
async def get_check(
    check_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    check = await pipeline.history.get_by_id(check_id, principal.user_id)
    return success_response(request=request, data=to_check_response(check))


@router.patch("/{check_id}", response_model=SuccessEnvelope[CheckResponse])
async def update_check_notes(
    check_id: str,
    request: Request,
    payload: NotesPatchRequest,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    check = await pipeline.history.update_notes(check_id, principal.user_id, payload.notes)
    return success_response(request=request, data=to_check_response(check))


@router.delete("/{check_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_check(
    check_id: str,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> Response:
    await pipeline.history.delete(check_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{check_id}/rewrites", response_model=SuccessEnvelope[RewriteSetResponse])
async def rewrite_check(
    check_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    # Each call returns a fresh set; nothing is stored.
    rewrites = await pipeline.rewrites_for_check(principal.user_id, check_id)
    return success_response(request=request, data=to_rewrite_response(rewrites))


@router.post("/{check_id}/export", response_model=SuccessEnvelope[dict[str, Any]])
async def export_check(
    check_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> dict:
    document = await pipeline.export_check(principal.user_id, principal.plan_key, check_id)
    return success_response(request=request, data=document)
