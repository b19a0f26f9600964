from __future__ import annotations

import logging
from datetime import timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safepost.core.config import get_settings
from safepost.core.errors import DatabaseError, NotFound
from safepost.domain.models import ComplianceCheck
from safepost.domain.types import AnalysisResult, ContentType, SavedComplianceCheck
from safepost.persistence.repos import compliance_checks as checks_repo


logger = logging.getLogger(__name__)


def to_saved(row: ComplianceCheck) -> SavedComplianceCheck:
    created_at = row.created_at
    # SQLite drops tzinfo; stored values are always UTC.
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return SavedComplianceCheck(
        id=row.id,
        created_at=created_at,
        user_id=row.user_id,
        content_text=row.content_text,
        content_type=row.content_type,
        platform=row.platform,
        overall_status=row.overall_status,
        compliance_score=row.compliance_score,
        result_json=dict(row.result_json or {}),
        notes=row.notes,
    )


def clamp_limit(limit: int | None) -> int:
    settings = get_settings()
    if limit is None:
        return settings.history_default_limit
    return max(1, min(int(limit), settings.history_max_limit))


class HistoryStore:
    """Per-user record of completed analyses.

    Every lookup and mutation is scoped by ``user_id``: another user's id
    behaves exactly like a missing one. Each write commits on its own so a
    failure later in the same request never rolls back a saved verdict.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(
        self,
        user_id: str,
        content_text: str,
        content_type: ContentType | str,
        platform: str,
        result: AnalysisResult,
        *,
        notes: str | None = None,
    ) -> SavedComplianceCheck:
        try:
            row = await checks_repo.insert_check(
                self._session,
                user_id=user_id,
                content_text=content_text,
                content_type=ContentType(content_type).value,
                platform=platform,
                overall_status=result.overall_status.value,
                compliance_score=result.compliance_score,
                result_json=result.to_dict(),
                notes=notes,
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise DatabaseError("Failed to save compliance check") from exc
        logger.info(
            "history_saved check_id=%s user_id=%s status=%s", row.id, user_id, row.overall_status
        )
        return to_saved(row)

    async def list_by_user(self, user_id: str, limit: int | None = None) -> list[SavedComplianceCheck]:
        rows = await checks_repo.list_checks_by_user(self._session, user_id, clamp_limit(limit))
        return [to_saved(row) for row in rows]

    async def get_by_id(self, check_id: str, user_id: str) -> SavedComplianceCheck:
        row = await checks_repo.get_check_for_user(self._session, check_id, user_id)
        if row is None:
            raise NotFound(f"Compliance check {check_id} not found")
        return to_saved(row)

    async def delete(self, check_id: str, user_id: str) -> None:
        # Idempotent: a missing or foreign id deletes nothing and is not an error.
        try:
            deleted = await checks_repo.delete_check_for_user(self._session, check_id, user_id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise DatabaseError("Failed to delete compliance check") from exc
        logger.info("history_deleted check_id=%s user_id=%s deleted=%s", check_id, user_id, deleted)

    async def update_notes(self, check_id: str, user_id: str, notes: str | None) -> SavedComplianceCheck:
        cleaned = (notes or "").strip() or None
        try:
            row = await checks_repo.update_notes(self._session, check_id, user_id, cleaned)
            if row is None:
                raise NotFound(f"Compliance check {check_id} not found")
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise DatabaseError("Failed to update notes") from exc
        return to_saved(row)
