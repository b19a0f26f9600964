from __future__ import annotations

import asyncio
import json
from typing import Callable, Iterable

from safepost.domain.types import ImageAttachment


_DEFAULT_VERDICT = {
    "overall_status": "compliant",
    "summary": "No compliance issues were identified.",
    "overall_verdict": "This content can be published as written.",
    "issues": [],
    "compliant_elements": [],
}

_DEFAULT_REWRITES = [
    {
        "option_title": "Minimal Edit",
        "content": "We offer evidence-based care. Individual results vary.",
        "explanation": "Removes outcome claims and adds a results-vary statement.",
    },
    {
        "option_title": "Educational",
        "content": "Learn how our team assesses whether a treatment suits you.",
        "explanation": "Focuses on information instead of promised outcomes.",
    },
    {
        "option_title": "Conservative",
        "content": "Book a consultation to discuss your options and their risks.",
        "explanation": "Invites assessment without inducements or expectations.",
    },
]


def _default_responder(messages: list[dict]) -> str:
    # Rewrite prompts ask for a JSON array; everything else gets a verdict.
    system = " ".join(m.get("content", "") for m in messages if m.get("role") == "system")
    if "JSON array" in system:
        return json.dumps(_DEFAULT_REWRITES)
    return json.dumps(_DEFAULT_VERDICT)


class FakeLLMProvider:
    """Deterministic provider for tests and offline development.

    ``responses`` is consumed in order; the last entry repeats once the list
    is exhausted. An entry may be a string, an exception to raise, or a
    callable receiving the messages.
    """

    def __init__(
        self,
        responses: Iterable[str | BaseException | Callable[[list[dict]], str]] | None = None,
        *,
        delay_s: float = 0.0,
    ) -> None:
        self._responses = list(responses) if responses is not None else [_default_responder]
        self._delay_s = delay_s
        self.calls: list[dict] = []

    async def complete(
        self,
        messages: list[dict],
        *,
        image: ImageAttachment | None = None,
        temperature: float | None = None,
    ) -> str:
        self.calls.append({"messages": messages, "image": image, "temperature": temperature})
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        index = min(len(self.calls) - 1, len(self._responses) - 1)
        response = self._responses[index]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(messages)
        return response
