from __future__ import annotations

import asyncio
import logging
import time

from safepost.core.config import get_settings
from safepost.core.errors import EngineTimeout, EngineUnavailable, SafePostError
from safepost.domain.types import AnalysisResult, ImageAttachment
from safepost.providers.llm.base import LLMProvider
from safepost.services.analysis.normalizer import parse_engine_text
from safepost.services.analysis.request_builder import AnalysisRequest
from safepost.services.telemetry import increment_counter, record_external_call


logger = logging.getLogger(__name__)

ENGINE_INTEGRATION = "compliance_engine"


async def call_engine(
    provider: LLMProvider,
    messages: list[dict],
    *,
    timeout_s: float,
    image: ImageAttachment | None = None,
    temperature: float | None = None,
    request_id: str | None = None,
    operation: str = "analyze",
) -> str:
    """Make one bounded call to the model provider.

    ``wait_for`` cancels the in-flight call on timeout, so an answer arriving
    after the deadline is never applied.
    """
    started = time.monotonic()
    success = False
    try:
        text = await asyncio.wait_for(
            provider.complete(messages, image=image, temperature=temperature),
            timeout=timeout_s,
        )
        success = True
        return text
    except asyncio.TimeoutError as exc:
        logger.warning(
            "engine_timeout request_id=%s operation=%s timeout_s=%s", request_id, operation, timeout_s
        )
        increment_counter(f"engine_{operation}_timeouts_total")
        raise EngineTimeout(f"Compliance engine did not respond within {timeout_s:g}s") from exc
    except SafePostError:
        raise
    except Exception as exc:  # noqa: BLE001 - unknown provider failures count as transport errors
        logger.error("engine_error request_id=%s operation=%s error=%s", request_id, operation, type(exc).__name__)
        raise EngineUnavailable("Compliance engine request failed") from exc
    finally:
        latency_ms = (time.monotonic() - started) * 1000.0
        record_external_call(integration=ENGINE_INTEGRATION, latency_ms=latency_ms, success=success)


class ComplianceEngineClient:
    def __init__(
        self,
        provider: LLMProvider,
        *,
        timeout_s: float | None = None,
        request_id: str | None = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider
        self._timeout_s = settings.engine_timeout_s if timeout_s is None else timeout_s
        self._temperature = settings.engine_temperature
        self._request_id = request_id

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        # No local state is touched until the engine answer has been normalized.
        logger.info(
            "engine_analyze_start request_id=%s fingerprint=%s guidelines=%s",
            self._request_id,
            request.fingerprint[:12],
            len(request.guidelines),
        )
        text = await call_engine(
            self._provider,
            request.messages(),
            timeout_s=self._timeout_s,
            image=request.image,
            temperature=self._temperature,
            request_id=self._request_id,
        )
        result = parse_engine_text(text)
        increment_counter(f"verdict_{result.overall_status.value}_total")
        logger.info(
            "engine_analyze_done request_id=%s status=%s critical=%s warning=%s",
            self._request_id,
            result.overall_status.value,
            result.critical_count,
            result.warning_count,
        )
        return result
