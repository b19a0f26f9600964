from __future__ import annotations

import logging

from safepost.core.errors import FeatureNotEntitled
from safepost.domain.types import PlanEntitlement


logger = logging.getLogger(__name__)

DEFAULT_PLAN_KEY = "free"

FEATURE_IMAGE_ATTACHMENT = "image_attachment"
FEATURE_PDF_EXPORT = "pdf_export"
FEATURE_MULTI_USER = "multi_user"
FEATURE_BULK_REVIEW = "bulk_review"

FEATURE_KEYS = (
    FEATURE_IMAGE_ATTACHMENT,
    FEATURE_PDF_EXPORT,
    FEATURE_MULTI_USER,
    FEATURE_BULK_REVIEW,
)

# Fixed tier order, lowest first.
TIER_ORDER = ("free", "professional", "proplus", "ultra")

PLAN_ALIASES = {
    "starter": "free",
    "none": "free",
    "pro": "professional",
    "pro_plus": "proplus",
    "pro+": "proplus",
}

_PLANS: dict[str, PlanEntitlement] = {
    "free": PlanEntitlement(
        plan_key="free",
        tier_rank=0,
        display_name="SafePost Starter",
        tier_label="Starter",
        monthly_check_limit=3,
        max_team_members=1,
        image_attachment=False,
        pdf_export=False,
        multi_user=False,
        bulk_review=False,
    ),
    "professional": PlanEntitlement(
        plan_key="professional",
        tier_rank=1,
        display_name="SafePost Professional",
        tier_label="Professional",
        monthly_check_limit=30,
        max_team_members=1,
        image_attachment=True,
        pdf_export=False,
        multi_user=False,
        bulk_review=False,
    ),
    "proplus": PlanEntitlement(
        plan_key="proplus",
        tier_rank=2,
        display_name="SafePost Pro+",
        tier_label="Pro+",
        monthly_check_limit=100,
        max_team_members=3,
        image_attachment=True,
        pdf_export=False,
        multi_user=True,
        bulk_review=False,
    ),
    "ultra": PlanEntitlement(
        plan_key="ultra",
        tier_rank=3,
        display_name="SafePost Ultra",
        tier_label="Ultra",
        monthly_check_limit=None,
        max_team_members=10,
        image_attachment=True,
        pdf_export=True,
        multi_user=True,
        bulk_review=True,
    ),
}


def canonical_plan_key(plan_key: str | None) -> str:
    key = (plan_key or "").strip().lower()
    key = PLAN_ALIASES.get(key, key)
    if key not in _PLANS:
        return DEFAULT_PLAN_KEY
    return key


def resolve_entitlement(plan_key: str | None) -> PlanEntitlement:
    """Map an opaque plan identifier to its capabilities.

    Unknown or empty identifiers resolve to the lowest tier instead of raising:
    an unrecognized plan never unlocks anything.
    """
    key = canonical_plan_key(plan_key)
    if key == DEFAULT_PLAN_KEY and (plan_key or "").strip().lower() not in ("free", "starter", "none", ""):
        logger.warning("entitlement_unknown_plan plan_key=%s resolved=%s", plan_key, key)
    return _PLANS[key]


def all_entitlements() -> list[PlanEntitlement]:
    return [_PLANS[key] for key in TIER_ORDER]


def has_capability(entitlement: PlanEntitlement, feature: str) -> bool:
    if feature not in FEATURE_KEYS:
        raise ValueError(f"Unknown feature {feature!r}")
    return bool(getattr(entitlement, feature))


def require_capability(entitlement: PlanEntitlement, feature: str) -> None:
    # Server-side gate; any client-side disabling is only a hint.
    if not has_capability(entitlement, feature):
        logger.info("feature_denied plan_key=%s feature=%s", entitlement.plan_key, feature)
        raise FeatureNotEntitled(feature, entitlement.plan_key)
