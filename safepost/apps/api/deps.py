from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from safepost.apps.api.response import get_request_id
from safepost.persistence.db import get_session
from safepost.providers.llm.base import LLMProvider
from safepost.providers.llm.factory import get_llm_provider
from safepost.services.entitlements import resolve_entitlement
from safepost.services.pipeline import CompliancePipeline


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


class Principal(BaseModel):
    # Identity and plan as asserted by the upstream gateway.
    user_id: str
    plan_key: str


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
    )


def get_current_principal(request: Request) -> Principal:
    user_id = (request.headers.get("X-User-Id") or "").strip()
    if not user_id:
        raise _auth_error("X-User-Id header is required")
    # A missing or unknown plan is not an auth failure; it is logged and resolves to the lowest tier.
    entitlement = resolve_entitlement(request.headers.get("X-Plan"))
    return Principal(user_id=user_id, plan_key=entitlement.plan_key)


def get_provider(request: Request) -> LLMProvider:
    return get_llm_provider(request_id=get_request_id(request))


def get_pipeline(
    request: Request,
    db: AsyncSession = Depends(get_db),
    provider: LLMProvider = Depends(get_provider),
) -> CompliancePipeline:
    return CompliancePipeline(db, provider, request_id=get_request_id(request))
