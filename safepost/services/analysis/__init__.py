from __future__ import annotations

from safepost.services.analysis.engine import ComplianceEngineClient, call_engine
from safepost.services.analysis.normalizer import (
    normalize,
    normalize_issue,
    normalize_severity,
    normalize_status,
    parse_engine_text,
    result_from_dict,
)
from safepost.services.analysis.request_builder import AnalysisRequest, build_request
from safepost.services.analysis.rewrites import RewriteGenerator, parse_rewrites

__all__ = [
    "AnalysisRequest",
    "ComplianceEngineClient",
    "RewriteGenerator",
    "build_request",
    "call_engine",
    "normalize",
    "normalize_issue",
    "normalize_severity",
    "normalize_status",
    "parse_engine_text",
    "parse_rewrites",
    "result_from_dict",
]
