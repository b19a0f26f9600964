from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from safepost.core.errors import CheckLimitReached
from safepost.domain.types import PlanEntitlement, UsageSummary
from safepost.persistence.repos import compliance_checks as checks_repo


def month_start(now: datetime | None = None) -> datetime:
    # Usage windows are calendar months in UTC.
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    current = current.astimezone(timezone.utc)
    return current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def summarize_usage(checks_used: int, limit: int | None) -> UsageSummary:
    if limit is None:
        return UsageSummary(checks_used=checks_used, limit=None, remaining=None, at_limit=False)
    remaining = max(0, limit - checks_used)
    return UsageSummary(
        checks_used=checks_used,
        limit=limit,
        remaining=remaining,
        at_limit=remaining == 0,
    )


async def get_usage_summary(
    session: AsyncSession,
    user_id: str,
    entitlement: PlanEntitlement,
    *,
    now: datetime | None = None,
) -> UsageSummary:
    used = await checks_repo.count_checks_since(session, user_id, month_start(now))
    return summarize_usage(used, entitlement.monthly_check_limit)


async def enforce_check_limit(
    session: AsyncSession,
    user_id: str,
    entitlement: PlanEntitlement,
    *,
    now: datetime | None = None,
) -> UsageSummary:
    usage = await get_usage_summary(session, user_id, entitlement, now=now)
    if usage.at_limit:
        raise CheckLimitReached(
            f"{entitlement.display_name} includes {usage.limit} checks per month; "
            "upgrade your plan to run more checks"
        )
    return usage
