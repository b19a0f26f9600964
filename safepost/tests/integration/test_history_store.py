from __future__ import annotations

import pytest

from safepost.core.errors import NotFound
from safepost.domain.types import ContentType
from safepost.persistence.db import SessionLocal
from safepost.services.analysis.normalizer import normalize, result_from_dict
from safepost.services.history import HistoryStore
from safepost.tests.utils.fakes import GUARANTEE_CONTENT, GUARANTEE_VERDICT


async def _save(store: HistoryStore, user_id: str = "u1", content: str = GUARANTEE_CONTENT):
    return await store.save(
        user_id,
        content,
        ContentType.SOCIAL_MEDIA_POST,
        "instagram",
        normalize(GUARANTEE_VERDICT),
    )


async def test_get_after_save_returns_equal_record() -> None:
    async with SessionLocal() as session:
        store = HistoryStore(session)
        saved = await _save(store)

    async with SessionLocal() as session:
        loaded = await HistoryStore(session).get_by_id(saved.id, "u1")

    assert loaded.id == saved.id
    for field in (
        "user_id",
        "content_text",
        "content_type",
        "platform",
        "overall_status",
        "compliance_score",
        "result_json",
        "notes",
    ):
        assert getattr(loaded, field) == getattr(saved, field), field
    assert loaded.created_at.tzinfo is not None
    assert result_from_dict(loaded.result_json) == result_from_dict(saved.result_json)


async def test_records_are_scoped_to_their_owner() -> None:
    async with SessionLocal() as session:
        store = HistoryStore(session)
        saved = await _save(store, user_id="owner")
        with pytest.raises(NotFound):
            await store.get_by_id(saved.id, "intruder")
        await store.delete(saved.id, "intruder")
        assert (await store.get_by_id(saved.id, "owner")).id == saved.id
        assert await store.list_by_user("intruder") == []


async def test_delete_is_idempotent() -> None:
    async with SessionLocal() as session:
        store = HistoryStore(session)
        saved = await _save(store)
        await store.delete(saved.id, "u1")
        await store.delete(saved.id, "u1")
        await store.delete("does-not-exist", "u1")
        with pytest.raises(NotFound):
            await store.get_by_id(saved.id, "u1")


async def test_list_is_newest_first_and_limited() -> None:
    async with SessionLocal() as session:
        store = HistoryStore(session)
        saved = [await _save(store, content=f"post {index}") for index in range(4)]
        listed = await store.list_by_user("u1", limit=3)

    assert [item.id for item in listed] == [item.id for item in reversed(saved)][:3]


async def test_list_limit_is_clamped(monkeypatch) -> None:
    from safepost.core.config import get_settings

    monkeypatch.setenv("HISTORY_MAX_LIMIT", "2")
    get_settings.cache_clear()
    async with SessionLocal() as session:
        store = HistoryStore(session)
        for index in range(3):
            await _save(store, content=f"post {index}")
        assert len(await store.list_by_user("u1", limit=50)) == 2


async def test_update_notes_changes_only_notes() -> None:
    async with SessionLocal() as session:
        store = HistoryStore(session)
        saved = await _save(store)
        updated = await store.update_notes(saved.id, "u1", "  Approved by clinic owner  ")
        assert updated.notes == "Approved by clinic owner"
        assert updated.result_json == saved.result_json
        with pytest.raises(NotFound):
            await store.update_notes(saved.id, "someone-else", "hijack")
