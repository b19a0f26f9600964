from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from safepost.domain.types import PlanEntitlement, SavedComplianceCheck
from safepost.services.analysis.normalizer import result_from_dict
from safepost.services.entitlements import FEATURE_PDF_EXPORT, require_capability


REPORT_TITLE = "SafePost Compliance Report"
REPORT_DISCLAIMER = (
    "This report is an automated assessment to support, not replace, your own review "
    "of the applicable advertising guidelines."
)


def report_filename(saved: SavedComplianceCheck) -> str:
    return f"safepost-report-{saved.created_at:%Y%m%d}-{saved.id[:8]}.pdf"


def build_export_document(
    saved: SavedComplianceCheck,
    entitlement: PlanEntitlement,
    *,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Assemble the printable report for one saved check.

    The document carries everything the PDF renderer lays out: metadata, the
    verdict, issues in display order and the owner's notes.
    """
    require_capability(entitlement, FEATURE_PDF_EXPORT)
    result = result_from_dict(saved.result_json)
    display = result.display_view()
    return {
        "title": REPORT_TITLE,
        "filename": report_filename(saved),
        "generated_at": (generated_at or datetime.now(timezone.utc)).isoformat(),
        "plan": entitlement.display_name,
        "check": {
            "id": saved.id,
            "created_at": saved.created_at.isoformat(),
            "content_type": saved.content_type,
            "platform": saved.platform,
            "content_text": saved.content_text,
        },
        "verdict": {
            "overall_status": result.overall_status.value,
            "compliance_score": result.compliance_score,
            "summary": result.summary,
            "overall_verdict": result.overall_verdict,
            "compliant_elements": list(result.compliant_elements),
        },
        **display,
        "notes": saved.notes,
        "disclaimer": REPORT_DISCLAIMER,
    }
