from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from safepost.apps.api.deps import Principal, get_current_principal
from safepost.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from safepost.apps.api.response import SuccessEnvelope, success_response
from safepost.services.guidelines import get_guideline_store


router = APIRouter(prefix="/guidelines", tags=["guidelines"], responses=DEFAULT_ERROR_RESPONSES)


class GuidelineResponse(BaseModel):
    id: str
    category: str
    subcategory: str
    source_document: str
    section_reference: str
    rule_text: str
    plain_english_summary: str
    recommended_action: str


class GuidelineListResponse(BaseModel):
    count: int
    items: list[GuidelineResponse]


@router.get("", response_model=SuccessEnvelope[GuidelineListResponse])
async def list_guidelines(
    request: Request,
    _principal: Principal = Depends(get_current_principal),
) -> dict:
    corpus = await get_guideline_store().get_corpus()
    payload = GuidelineListResponse(
        count=len(corpus),
        items=[GuidelineResponse(**record.to_dict()) for record in corpus],
    )
    return success_response(request=request, data=payload)


@router.post("/refresh", response_model=SuccessEnvelope[GuidelineListResponse])
async def refresh_guidelines(
    request: Request,
    _principal: Principal = Depends(get_current_principal),
) -> dict:
    # Swaps in a new snapshot after the corpus has been reseeded.
    corpus = await get_guideline_store().refresh()
    payload = GuidelineListResponse(
        count=len(corpus),
        items=[GuidelineResponse(**record.to_dict()) for record in corpus],
    )
    return success_response(request=request, data=payload)
