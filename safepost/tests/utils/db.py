from __future__ import annotations

from typing import Iterable

from safepost.domain.models import Guideline
from safepost.domain.types import GuidelineRecord
from safepost.persistence.db import SessionLocal
from safepost.tests.utils.fakes import SAMPLE_CORPUS


async def seed_corpus(records: Iterable[GuidelineRecord] = SAMPLE_CORPUS) -> None:
    async with SessionLocal() as session:
        session.add_all(Guideline(**record.to_dict()) for record in records)
        await session.commit()
