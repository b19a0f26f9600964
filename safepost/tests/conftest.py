from __future__ import annotations

import os
import tempfile

# Point the module-level engine at a throwaway SQLite file before it is imported.
os.environ["DATABASE_URL"] = os.environ.get(
    "SAFEPOST_TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'safepost_test.db')}",
)
os.environ["LLM_PROVIDER"] = "fake"

import pytest  # noqa: E402

from safepost.core.config import get_settings  # noqa: E402
from safepost.domain.models import Base  # noqa: E402
from safepost.persistence.db import engine  # noqa: E402
from safepost.services.guidelines import reset_guideline_store  # noqa: E402
from safepost.services.telemetry import reset_telemetry  # noqa: E402


@pytest.fixture(autouse=True)
def reset_process_state() -> None:
    # Settings, the corpus snapshot and telemetry are process-wide singletons.
    get_settings.cache_clear()
    reset_guideline_store()
    reset_telemetry()
    yield
    get_settings.cache_clear()
    reset_guideline_store()
    reset_telemetry()


@pytest.fixture(autouse=True)
async def fresh_schema() -> None:
    # Rebuild tables per test so history and usage counts never leak across tests.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    await engine.dispose()
