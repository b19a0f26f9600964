from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from safepost.core.config import get_settings
from safepost.core.errors import InvalidInput, SafePostError
from safepost.domain.types import (
    AnalysisResult,
    ComplianceIssue,
    ImageAttachment,
    RewriteSet,
    SavedComplianceCheck,
    UsageSummary,
)
from safepost.providers.llm.base import LLMProvider
from safepost.services.analysis.engine import ComplianceEngineClient
from safepost.services.analysis.normalizer import result_from_dict
from safepost.services.analysis.request_builder import build_request
from safepost.services.analysis.rewrites import RewriteGenerator
from safepost.services.entitlements import (
    FEATURE_BULK_REVIEW,
    FEATURE_IMAGE_ATTACHMENT,
    FEATURE_PDF_EXPORT,
    require_capability,
    resolve_entitlement,
)
from safepost.services.export import build_export_document
from safepost.services.guidelines import GuidelineStore, get_guideline_store
from safepost.services.history import HistoryStore
from safepost.services.resilience import retry_async
from safepost.services.telemetry import increment_counter
from safepost.services.usage import enforce_check_limit, summarize_usage


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckSubmission:
    content: str
    content_type: str
    platform: str | None = None
    image: ImageAttachment | None = None


@dataclass(frozen=True)
class CheckOutcome:
    check: SavedComplianceCheck
    result: AnalysisResult
    usage: UsageSummary


@dataclass(frozen=True)
class BulkItemOutcome:
    index: int
    outcome: CheckOutcome | None = None
    error: SafePostError | None = None


class CompliancePipeline:
    """Orchestrates one user's compliance actions.

    A check runs strictly in order: entitlement, usage limit, corpus, request,
    engine, persistence. Nothing is written until the verdict has been
    normalized. Concurrent duplicate submissions from the same user are not
    serialized or deduplicated here; each one is analysed and saved.
    """

    def __init__(
        self,
        session: AsyncSession,
        provider: LLMProvider,
        *,
        guideline_store: GuidelineStore | None = None,
        request_id: str | None = None,
    ) -> None:
        self._session = session
        self._guidelines = guideline_store or get_guideline_store()
        self._engine = ComplianceEngineClient(provider, request_id=request_id)
        self._rewriter = RewriteGenerator(provider, request_id=request_id)
        self._history = HistoryStore(session)
        self._request_id = request_id

    @property
    def history(self) -> HistoryStore:
        return self._history

    async def run_check(self, user_id: str, plan_key: str | None, submission: CheckSubmission) -> CheckOutcome:
        entitlement = resolve_entitlement(plan_key)
        if submission.image is not None:
            require_capability(entitlement, FEATURE_IMAGE_ATTACHMENT)
        usage = await enforce_check_limit(self._session, user_id, entitlement)

        corpus = await self._guidelines.get_corpus()
        request = build_request(
            submission.content,
            submission.content_type,
            submission.platform,
            corpus,
            image=submission.image,
        )
        logger.info(
            "check_start request_id=%s user_id=%s plan=%s content_type=%s",
            self._request_id,
            user_id,
            entitlement.plan_key,
            request.content_type.value,
        )
        result = await retry_async(lambda: self._engine.analyze(request), operation="engine_analyze")

        saved = await self._history.save(
            user_id,
            request.content,
            request.content_type,
            request.platform,
            result,
        )
        increment_counter("checks_completed_total")
        return CheckOutcome(
            check=saved,
            result=result,
            usage=summarize_usage(usage.checks_used + 1, entitlement.monthly_check_limit),
        )

    async def run_bulk(
        self, user_id: str, plan_key: str | None, submissions: Sequence[CheckSubmission]
    ) -> list[BulkItemOutcome]:
        entitlement = resolve_entitlement(plan_key)
        require_capability(entitlement, FEATURE_BULK_REVIEW)
        max_items = get_settings().bulk_max_items
        if not submissions:
            raise InvalidInput("Bulk review needs at least one item")
        if len(submissions) > max_items:
            raise InvalidInput(f"Bulk review accepts at most {max_items} items")

        # Sequential on purpose: one session, and each item is saved on its own.
        outcomes: list[BulkItemOutcome] = []
        for index, submission in enumerate(submissions):
            try:
                outcome = await self.run_check(user_id, plan_key, submission)
            except SafePostError as exc:
                logger.warning(
                    "bulk_item_failed request_id=%s index=%s code=%s", self._request_id, index, exc.code
                )
                outcomes.append(BulkItemOutcome(index=index, error=exc))
                continue
            outcomes.append(BulkItemOutcome(index=index, outcome=outcome))
        logger.info(
            "bulk_done request_id=%s items=%s failed=%s",
            self._request_id,
            len(outcomes),
            sum(1 for item in outcomes if item.error is not None),
        )
        return outcomes

    async def generate_rewrites(self, content: str, issues: Sequence[ComplianceIssue]) -> RewriteSet:
        # Rewrites are ephemeral: never persisted, regenerated on demand.
        return await self._rewriter.generate_rewrites(content, issues)

    async def rewrites_for_check(self, user_id: str, check_id: str) -> RewriteSet:
        saved = await self._history.get_by_id(check_id, user_id)
        result = result_from_dict(saved.result_json)
        return await self.generate_rewrites(saved.content_text, result.display_issues)

    async def export_check(self, user_id: str, plan_key: str | None, check_id: str) -> dict[str, Any]:
        entitlement = resolve_entitlement(plan_key)
        # Reject before touching storage.
        require_capability(entitlement, FEATURE_PDF_EXPORT)
        saved = await self._history.get_by_id(check_id, user_id)
        return build_export_document(saved, entitlement)
