from __future__ import annotations

import pytest

from safepost.core.errors import ContractViolation, EngineTimeout, EngineUnavailable, InvalidInput
from safepost.services.resilience import RetryPolicy, retry_async
from safepost.services.telemetry import counters_snapshot


_POLICY = RetryPolicy(max_attempts=2, backoff_ms=1)


async def test_retry_async_retries_transient_once() -> None:
    calls = {"count": 0}

    async def flaky() -> str:
        calls["count"] += 1
        if calls["count"] < 2:
            raise EngineTimeout("timeout")
        return "ok"

    result = await retry_async(flaky, policy=_POLICY)
    assert result == "ok"
    assert calls["count"] == 2
    assert counters_snapshot()["engine_retries_total"] == 1


async def test_retry_async_gives_up_after_max_attempts() -> None:
    calls = {"count": 0}

    async def down() -> str:
        calls["count"] += 1
        raise EngineUnavailable("down")

    with pytest.raises(EngineUnavailable):
        await retry_async(down, policy=_POLICY)
    assert calls["count"] == 2


@pytest.mark.parametrize("error", [InvalidInput("bad"), ContractViolation("bad"), ValueError("bad")])
async def test_terminal_errors_are_never_retried(error) -> None:
    calls = {"count": 0}

    async def broken() -> str:
        calls["count"] += 1
        raise error

    with pytest.raises(type(error)):
        await retry_async(broken, policy=_POLICY)
    assert calls["count"] == 1
