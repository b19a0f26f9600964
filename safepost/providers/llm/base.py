from __future__ import annotations

from typing import Protocol

from safepost.domain.types import ImageAttachment


class LLMProvider(Protocol):
    async def complete(
        self,
        messages: list[dict],
        *,
        image: ImageAttachment | None = None,
        temperature: float | None = None,
    ) -> str:
        ...
