from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from safepost.apps.api.deps import Principal, get_current_principal, get_db
from safepost.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from safepost.apps.api.response import SuccessEnvelope, success_response
from safepost.apps.api.routes.schemas import UsageResponse
from safepost.services.entitlements import resolve_entitlement
from safepost.services.usage import get_usage_summary


router = APIRouter(prefix="/entitlements", tags=["entitlements"], responses=DEFAULT_ERROR_RESPONSES)


class EntitlementResponse(BaseModel):
    plan_key: str
    display_name: str
    tier_label: str
    monthly_check_limit: int | None
    max_team_members: int
    capabilities: dict[str, bool]


class MyEntitlementResponse(BaseModel):
    entitlement: EntitlementResponse
    usage: UsageResponse


@router.get("/me", response_model=SuccessEnvelope[MyEntitlementResponse])
async def my_entitlement(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict:
    entitlement = resolve_entitlement(principal.plan_key)
    usage = await get_usage_summary(db, principal.user_id, entitlement)
    payload = MyEntitlementResponse(
        entitlement=EntitlementResponse(**entitlement.to_dict()),
        usage=UsageResponse(**usage.to_dict()),
    )
    return success_response(request=request, data=payload)
