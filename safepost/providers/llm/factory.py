from __future__ import annotations

from safepost.core.config import get_settings
from safepost.core.errors import ProviderConfigError
from safepost.providers.llm.base import LLMProvider
from safepost.providers.llm.fake import FakeLLMProvider
from safepost.providers.llm.gemini_vertex import GeminiVertexProvider


def get_llm_provider(request_id: str | None = None) -> LLMProvider:
    settings = get_settings()
    provider = (settings.llm_provider or "vertex").lower()

    if provider == "fake":
        return FakeLLMProvider()
    if provider == "vertex":
        return GeminiVertexProvider(request_id=request_id)
    raise ProviderConfigError(f"Unknown LLM provider: {settings.llm_provider}")
