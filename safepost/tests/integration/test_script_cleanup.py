from __future__ import annotations

import argparse
import json

import pytest

import scripts.check_content as check_content
import scripts.seed_guidelines as seed_script
from safepost.core.errors import EmptyCorpus
from safepost.persistence.db import engine
from safepost.tests.utils.db import seed_corpus


class _DisposeSpy:
    # Stands in for the module-level engine; scripts only call dispose on it.
    def __init__(self) -> None:
        self.disposed = 0

    async def dispose(self) -> None:
        self.disposed += 1
        await engine.dispose()


def _args(**overrides) -> argparse.Namespace:
    values = {
        "content": "Book a consultation to discuss your options.",
        "content_type": "social_media_post",
        "platform": None,
        "rewrites": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


async def test_check_content_disposes_engine(monkeypatch, capsys) -> None:
    await seed_corpus()
    spy = _DisposeSpy()
    monkeypatch.setattr(check_content, "engine", spy)

    assert await check_content._run(_args()) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["result"]["overall_status"] == "compliant"
    assert spy.disposed == 1


async def test_check_content_disposes_engine_on_failure(monkeypatch) -> None:
    spy = _DisposeSpy()
    monkeypatch.setattr(check_content, "engine", spy)

    with pytest.raises(EmptyCorpus):
        await check_content._run(_args())
    assert spy.disposed == 1


async def test_seed_script_disposes_engine(monkeypatch) -> None:
    spy = _DisposeSpy()
    monkeypatch.setattr(seed_script, "engine", spy)

    assert await seed_script._run(replace=False) == 0
    assert spy.disposed == 1
