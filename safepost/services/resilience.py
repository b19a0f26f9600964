from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from safepost.core.config import get_settings
from safepost.core.errors import SafePostError
from safepost.services.telemetry import increment_counter


logger = logging.getLogger(__name__)


def _default_retryable(exc: Exception) -> bool:
    # Only errors flagged retryable (engine timeout/unavailable) qualify.
    return isinstance(exc, SafePostError) and exc.retryable


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    backoff_ms: int


def default_retry_policy() -> RetryPolicy:
    settings = get_settings()
    return RetryPolicy(
        max_attempts=settings.engine_retry_max_attempts,
        backoff_ms=settings.engine_retry_backoff_ms,
    )


async def retry_async(
    func: Callable[[], Awaitable[Any]],
    *,
    policy: RetryPolicy | None = None,
    retryable: Callable[[Exception], bool] | None = None,
    operation: str = "engine",
) -> Any:
    # Retry helper with jittered backoff; inputs are captured by func and never change.
    policy = policy or default_retry_policy()
    retryable = retryable or _default_retryable
    attempt = 1
    while True:
        try:
            return await func()
        except Exception as exc:  # noqa: BLE001 - non-retryable failures are re-raised
            if attempt >= max(policy.max_attempts, 1) or not retryable(exc):
                raise
            increment_counter(f"{operation}_retries_total")
            logger.warning(
                "retry_scheduled operation=%s attempt=%s error=%s",
                operation,
                attempt,
                type(exc).__name__,
            )
            jitter = random.uniform(0.5, 1.5)
            sleep_s = (policy.backoff_ms / 1000.0) * (2 ** (attempt - 1)) * jitter
            await asyncio.sleep(sleep_s)
            attempt += 1
