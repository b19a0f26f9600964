from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from safepost.domain.models import ComplianceCheck


async def insert_check(
    session: AsyncSession,
    *,
    user_id: str,
    content_text: str,
    content_type: str,
    platform: str,
    overall_status: str,
    compliance_score: int,
    result_json: dict[str, Any],
    notes: str | None = None,
) -> ComplianceCheck:
    check = ComplianceCheck(
        id=uuid4().hex,
        user_id=user_id,
        content_text=content_text,
        content_type=content_type,
        platform=platform,
        overall_status=overall_status,
        compliance_score=compliance_score,
        result_json=result_json,
        notes=notes,
    )
    session.add(check)
    # Flush so server-assigned fields are populated before the caller commits.
    await session.flush()
    return check


async def get_check_for_user(session: AsyncSession, check_id: str, user_id: str) -> ComplianceCheck | None:
    # Scope every lookup by owner so cross-user ids behave like missing ids.
    result = await session.execute(
        select(ComplianceCheck).where(
            ComplianceCheck.id == check_id,
            ComplianceCheck.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def list_checks_by_user(session: AsyncSession, user_id: str, limit: int) -> list[ComplianceCheck]:
    result = await session.execute(
        select(ComplianceCheck)
        .where(ComplianceCheck.user_id == user_id)
        .order_by(ComplianceCheck.created_at.desc(), ComplianceCheck.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_checks_since(session: AsyncSession, user_id: str, since: datetime) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(ComplianceCheck)
        .where(ComplianceCheck.user_id == user_id, ComplianceCheck.created_at >= since)
    )
    return int(result.scalar_one() or 0)


async def delete_check_for_user(session: AsyncSession, check_id: str, user_id: str) -> int:
    result = await session.execute(
        delete(ComplianceCheck).where(
            ComplianceCheck.id == check_id,
            ComplianceCheck.user_id == user_id,
        )
    )
    return int(result.rowcount or 0)


async def update_notes(
    session: AsyncSession, check_id: str, user_id: str, notes: str | None
) -> ComplianceCheck | None:
    # Fetch first to enforce ownership; notes are the only mutable field.
    check = await get_check_for_user(session, check_id, user_id)
    if check is None:
        return None
    check.notes = notes
    return check
