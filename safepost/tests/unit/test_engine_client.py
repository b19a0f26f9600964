from __future__ import annotations

import json

import pytest

from safepost.core.errors import (
    ContractViolation,
    EngineContractViolation,
    EngineTimeout,
    EngineUnavailable,
    ProviderConfigError,
)
from safepost.domain.types import OverallStatus
from safepost.providers.llm.fake import FakeLLMProvider
from safepost.services.analysis.engine import ComplianceEngineClient
from safepost.services.analysis.request_builder import build_request
from safepost.services.telemetry import counters_snapshot, external_call_stats
from safepost.tests.utils.fakes import GUARANTEE_CONTENT, GUARANTEE_VERDICT, SAMPLE_CORPUS, issue, verdict


def _request():
    return build_request(GUARANTEE_CONTENT, "social_media_post", "instagram", SAMPLE_CORPUS)


async def test_analyze_returns_normalized_result() -> None:
    provider = FakeLLMProvider([json.dumps(GUARANTEE_VERDICT)])
    result = await ComplianceEngineClient(provider).analyze(_request())

    assert result.overall_status is OverallStatus.NON_COMPLIANT
    assert result.critical_count == 1
    assert result.issues[0].guideline_reference == SAMPLE_CORPUS[0].citation
    assert len(provider.calls) == 1
    assert counters_snapshot()["verdict_non_compliant_total"] == 1
    assert external_call_stats(60)["compliance_engine"]["calls"] == 1


async def test_timeout_discards_late_answer() -> None:
    provider = FakeLLMProvider([json.dumps(GUARANTEE_VERDICT)], delay_s=0.5)
    client = ComplianceEngineClient(provider, timeout_s=0.01)
    with pytest.raises(EngineTimeout):
        await client.analyze(_request())
    assert external_call_stats(60)["compliance_engine"]["failures"] == 1


async def test_unexpected_provider_error_maps_to_unavailable() -> None:
    provider = FakeLLMProvider([RuntimeError("socket closed")])
    with pytest.raises(EngineUnavailable):
        await ComplianceEngineClient(provider).analyze(_request())


async def test_provider_config_error_propagates() -> None:
    provider = FakeLLMProvider([ProviderConfigError("missing project")])
    with pytest.raises(ProviderConfigError):
        await ComplianceEngineClient(provider).analyze(_request())


async def test_malformed_answer_is_contract_violation() -> None:
    provider = FakeLLMProvider(["I could not analyse this."])
    with pytest.raises(EngineContractViolation):
        await ComplianceEngineClient(provider).analyze(_request())


async def test_contradictory_verdict_is_rejected() -> None:
    provider = FakeLLMProvider([json.dumps(verdict("non_compliant", [issue("Warning")]))])
    with pytest.raises(ContractViolation):
        await ComplianceEngineClient(provider).analyze(_request())
