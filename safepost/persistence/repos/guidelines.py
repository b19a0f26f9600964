from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from safepost.domain.models import Guideline


async def list_guidelines(session: AsyncSession) -> list[Guideline]:
    # Order by category, then id, so the corpus serializes identically on every load.
    result = await session.execute(select(Guideline).order_by(Guideline.category, Guideline.id))
    return list(result.scalars().all())


async def get_guideline(session: AsyncSession, guideline_id: str) -> Guideline | None:
    return await session.get(Guideline, guideline_id)
