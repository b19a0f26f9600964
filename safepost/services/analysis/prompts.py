from __future__ import annotations

import json
from typing import Any


ANALYSIS_SYSTEM_PROMPT = (
    "You are SafePost, an expert compliance analyst for Australian health practitioners. "
    "Check the submitted advertising content against EVERY guideline provided and report each "
    "breach you find. Use Australian/UK spelling.\n\n"
    "Severity must be exactly \"Critical\" (a clear breach that could lead to regulatory action) "
    "or \"Warning\" (a grey area that a compliance professional should review).\n"
    "overall_status rules:\n"
    "- \"compliant\" when no issues are found;\n"
    "- \"non_compliant\" when at least one issue is Critical;\n"
    "- \"requires_review\" when issues exist but none is Critical;\n"
    "- \"not_healthcare\" when the content is unrelated to healthcare services.\n\n"
    "Return ONLY a JSON object (no markdown) with this structure:\n"
    "{\n"
    '  "overall_status": "compliant" | "non_compliant" | "requires_review" | "not_healthcare",\n'
    '  "compliance_score": <integer 0-100>,\n'
    '  "summary": "<2-3 sentence summary>",\n'
    '  "overall_verdict": "<closing message for the practitioner>",\n'
    '  "issues": [\n'
    "    {\n"
    '      "guideline_reference": "<citation of the guideline breached>",\n'
    '      "finding": "<what exactly is the potential breach>",\n'
    '      "severity": "Critical" | "Warning",\n'
    '      "recommendation": "<how to fix the content>"\n'
    "    }\n"
    "  ],\n"
    '  "compliant_elements": ["<things the content does correctly>"]\n'
    "}"
)


REWRITE_SYSTEM_PROMPT = (
    "You rewrite health practitioner advertising so it complies with the Australian "
    "regulatory guidelines. Keep the original intent where possible, remove every flagged "
    "breach, never introduce outcome guarantees, testimonials or inducements, and use "
    "Australian/UK spelling.\n\n"
    "Return ONLY a JSON array (no markdown) of objects with this structure:\n"
    '[{"option_title": "<short label>", "content": "<rewritten text>", '
    '"explanation": "<why this resolves the flagged issues>"}]'
)


def format_guidelines(guidelines: list[dict[str, Any]]) -> str:
    # Number every rule so the engine can cite the full corpus deterministically.
    blocks = []
    for index, guideline in enumerate(guidelines, start=1):
        blocks.append(
            "\n".join(
                [
                    f"[GUIDELINE {index}] id={guideline['id']}",
                    f"Category: {guideline['category']}",
                    f"Subcategory: {guideline['subcategory']}",
                    f"Source: {guideline['source_document']} {guideline['section_reference']}".rstrip(),
                    f"Rule: {guideline['rule_text']}",
                    f"Plain English: {guideline['plain_english_summary']}",
                    f"Recommended Action: {guideline['recommended_action']}",
                ]
            )
        )
    return "\n\n".join(blocks)


def build_analysis_messages(payload: dict[str, Any]) -> list[dict[str, str]]:
    user_prompt = (
        f"Analyse the following {payload['content_type']} intended for {payload['platform']}.\n\n"
        f"=== CONTENT TO ANALYSE ===\n{payload['content']}\n\n"
        f"=== APPLICABLE GUIDELINES ===\n{format_guidelines(payload['guidelines'])}"
    )
    if payload.get("has_image"):
        user_prompt += "\n\nAn image accompanies this content; analyse it as part of the advertisement."
    return [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_rewrite_messages(
    content: str, issues: list[dict[str, str]], option_count: int
) -> list[dict[str, str]]:
    user_prompt = (
        f"ORIGINAL CONTENT:\n{content}\n\n"
        f"IDENTIFIED ISSUES:\n{json.dumps(issues, ensure_ascii=False, indent=2)}\n\n"
        f"Provide exactly {option_count} distinct compliant options "
        "(for example a minimal edit, an educational version and a conservative version)."
    )
    return [
        {"role": "system", "content": REWRITE_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]
