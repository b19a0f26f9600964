from __future__ import annotations

import json
from typing import Any, Callable

from safepost.domain.types import GuidelineRecord


GUARANTEE_RULE = GuidelineRecord(
    id="guaranteed-outcomes",
    category="Misleading or deceptive advertising",
    subcategory="Guarantees and absolute claims",
    source_document="Guidelines for advertising a regulated health service",
    section_reference="Section 4.1.3",
    rule_text="Advertising must not guarantee outcomes or use absolute terms such as 'guaranteed'.",
    plain_english_summary="Never promise results.",
    recommended_action="Replace absolute claims with balanced wording.",
)

TESTIMONIAL_RULE = GuidelineRecord(
    id="testimonials",
    category="Testimonials",
    subcategory="Clinical testimonials",
    source_document="Health Practitioner Regulation National Law",
    section_reference="s133(1)(c)",
    rule_text="Advertising must not use testimonials about clinical aspects of care.",
    plain_english_summary="No patient stories about clinical results.",
    recommended_action="Remove clinical testimonials.",
)

SAMPLE_CORPUS = (GUARANTEE_RULE, TESTIMONIAL_RULE)

GUARANTEE_CONTENT = "Guaranteed pain-free results every time!"


def issue(severity: str = "Critical", finding: str = "Absolute claim", **extra: Any) -> dict[str, Any]:
    payload = {
        "guideline_reference": GUARANTEE_RULE.citation,
        "finding": finding,
        "severity": severity,
        "recommendation": "Remove the guarantee.",
    }
    payload.update(extra)
    return payload


def verdict(status: str = "compliant", issues: list[dict] | None = None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "overall_status": status,
        "summary": "Summary.",
        "overall_verdict": "Verdict.",
        "issues": issues or [],
        "compliant_elements": [],
    }
    payload.update(extra)
    return payload


GUARANTEE_VERDICT = verdict(
    "non_compliant",
    [issue("Critical", "The post guarantees pain-free results every time.")],
    compliance_score=40,
)

COMPLIANT_REWRITES = [
    {
        "option_title": "Minimal Edit",
        "content": "Our team aims to keep treatment as comfortable as possible. Individual results vary.",
        "explanation": "Removes the absolute promise.",
    },
    {
        "option_title": "Educational",
        "content": "Ask us how we manage comfort during treatment and what results you can expect.",
        "explanation": "Focuses on information rather than outcomes.",
    },
    {
        "option_title": "Conservative",
        "content": "Book a consultation to discuss whether this treatment suits you.",
        "explanation": "Invites assessment without any guarantee.",
    },
]


def is_rewrite_prompt(messages: list[dict]) -> bool:
    system = " ".join(m.get("content", "") for m in messages if m.get("role") == "system")
    return "JSON array" in system


def scenario_responder(
    analysis: dict[str, Any] | None = None,
    rewrites: list[dict[str, Any]] | None = None,
) -> Callable[[list[dict]], str]:
    # Answer analysis and rewrite prompts from one provider, like the real model does.
    analysis = analysis or GUARANTEE_VERDICT
    rewrites = rewrites or COMPLIANT_REWRITES

    def _respond(messages: list[dict]) -> str:
        if is_rewrite_prompt(messages):
            return json.dumps(rewrites)
        return json.dumps(analysis)

    return _respond
