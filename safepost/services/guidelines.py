from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from safepost.core.config import get_settings
from safepost.domain.models import Guideline
from safepost.domain.types import GuidelineRecord
from safepost.persistence.db import SessionLocal
from safepost.persistence.repos import guidelines as guidelines_repo


logger = logging.getLogger(__name__)

GuidelineLoader = Callable[[], Awaitable[list[GuidelineRecord]]]


def to_record(row: Guideline) -> GuidelineRecord:
    return GuidelineRecord(
        id=row.id,
        category=row.category,
        subcategory=row.subcategory or "",
        source_document=row.source_document,
        section_reference=row.section_reference or "",
        rule_text=row.rule_text,
        plain_english_summary=row.plain_english_summary or "",
        recommended_action=row.recommended_action or "",
    )


async def load_guidelines_from_db() -> list[GuidelineRecord]:
    async with SessionLocal() as session:
        rows = await guidelines_repo.list_guidelines(session)
    return [to_record(row) for row in rows]


class GuidelineStore:
    """Read-only snapshot of the regulatory corpus.

    The corpus is loaded once and handed out as an immutable tuple, so
    concurrent checks can share it without locking. ``refresh`` swaps in a
    new snapshot wholesale; tuples already handed out are left untouched.
    """

    def __init__(
        self,
        loader: GuidelineLoader | None = None,
        *,
        ttl_s: int | None = None,
        time_source: Callable[[], float] | None = None,
    ) -> None:
        self._loader = loader or load_guidelines_from_db
        self._ttl_s = get_settings().guideline_cache_ttl_s if ttl_s is None else ttl_s
        self._time = time_source or time.monotonic
        self._snapshot: tuple[GuidelineRecord, ...] | None = None
        self._loaded_at: float | None = None
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        if not self._snapshot or self._loaded_at is None:
            # An empty corpus is never cached; the next access tries again.
            return False
        if self._ttl_s <= 0:
            return True
        return (self._time() - self._loaded_at) < self._ttl_s

    async def get_corpus(self) -> tuple[GuidelineRecord, ...]:
        if self._is_fresh():
            return self._snapshot  # type: ignore[return-value]
        async with self._lock:
            # Another waiter may have loaded while we queued on the lock.
            if self._is_fresh():
                return self._snapshot  # type: ignore[return-value]
            return await self._load()

    async def refresh(self) -> tuple[GuidelineRecord, ...]:
        async with self._lock:
            return await self._load()

    async def _load(self) -> tuple[GuidelineRecord, ...]:
        records = tuple(await self._loader())
        self._snapshot = records
        self._loaded_at = self._time()
        if records:
            logger.info("guidelines_loaded count=%s", len(records))
        else:
            logger.warning("guidelines_empty")
        return records


_guideline_store: GuidelineStore | None = None


def get_guideline_store() -> GuidelineStore:
    global _guideline_store
    if _guideline_store is None:
        _guideline_store = GuidelineStore()
    return _guideline_store


def reset_guideline_store() -> None:
    # Drop the cached snapshot so the next access reloads (tests, corpus updates).
    global _guideline_store
    _guideline_store = None
