from __future__ import annotations

import logging
from typing import Any, Sequence

from safepost.core.config import get_settings
from safepost.core.errors import (
    InvalidInput,
    NothingToRewrite,
    RewriteGenerationFailed,
    SafePostError,
)
from safepost.domain.types import ComplianceIssue, RewriteSet, RewrittenPost
from safepost.providers.llm.base import LLMProvider
from safepost.services.analysis.engine import call_engine
from safepost.services.analysis.normalizer import extract_json
from safepost.services.analysis.prompts import build_rewrite_messages
from safepost.services.resilience import RetryPolicy, retry_async


logger = logging.getLogger(__name__)


def _option_text(raw: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def parse_rewrites(text: str, option_count: int) -> RewriteSet:
    document = extract_json(text, opener="[", closer="]")
    if not isinstance(document, list):
        raise RewriteGenerationFailed("Rewrite response is not a JSON array")
    options: list[RewrittenPost] = []
    for index, raw in enumerate(document, start=1):
        if not isinstance(raw, dict):
            raise RewriteGenerationFailed("Each rewrite option must be a JSON object")
        content = _option_text(raw, "content")
        if not content:
            raise RewriteGenerationFailed(f"Rewrite option {index} has no content")
        options.append(
            RewrittenPost(
                option_title=_option_text(raw, "option_title", "optionTitle") or f"Option {index}",
                content=content,
                explanation=_option_text(raw, "explanation"),
            )
        )
    if len(options) < option_count:
        raise RewriteGenerationFailed(
            f"Expected {option_count} rewrite options, engine returned {len(options)}"
        )
    return RewriteSet(options=tuple(options[:option_count]))


class RewriteGenerator:
    """Produce alternative compliant versions of flagged content.

    Stateless: every call builds a fresh set from (content, issues), and the
    caller replaces whatever set it displayed before. Nothing is persisted.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        option_count: int | None = None,
        timeout_s: float | None = None,
        retry_policy: RetryPolicy | None = None,
        request_id: str | None = None,
    ) -> None:
        settings = get_settings()
        self._provider = provider
        self._option_count = option_count or settings.rewrite_option_count
        self._timeout_s = settings.engine_timeout_s if timeout_s is None else timeout_s
        self._temperature = settings.rewrite_temperature
        self._retry_policy = retry_policy
        self._request_id = request_id

    @property
    def option_count(self) -> int:
        return self._option_count

    async def generate_rewrites(self, content: str, issues: Sequence[ComplianceIssue]) -> RewriteSet:
        if not issues:
            raise NothingToRewrite("No issues were flagged, so there is nothing to rewrite")
        text = (content or "").strip()
        if not text:
            raise InvalidInput("Content must not be empty")
        messages = build_rewrite_messages(
            text, [issue.to_dict() for issue in issues], self._option_count
        )

        async def _attempt() -> RewriteSet:
            raw = await call_engine(
                self._provider,
                messages,
                timeout_s=self._timeout_s,
                temperature=self._temperature,
                request_id=self._request_id,
                operation="rewrite",
            )
            return parse_rewrites(raw, self._option_count)

        try:
            rewrites = await retry_async(
                _attempt,
                policy=self._retry_policy,
                retryable=lambda exc: isinstance(exc, SafePostError)
                and exc.retryable
                and not isinstance(exc, RewriteGenerationFailed),
                operation="rewrite",
            )
        except RewriteGenerationFailed:
            logger.warning("rewrite_generation_failed request_id=%s reason=unusable_output", self._request_id)
            raise
        except SafePostError as exc:
            logger.warning(
                "rewrite_generation_failed request_id=%s error=%s", self._request_id, type(exc).__name__
            )
            raise RewriteGenerationFailed("Failed to generate compliant rewrites") from exc
        logger.info("rewrite_generation_done request_id=%s options=%s", self._request_id, len(rewrites))
        return rewrites
