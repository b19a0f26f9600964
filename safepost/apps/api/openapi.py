from __future__ import annotations

from typing import Any

from safepost.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {
            "application/json": {
                "example": _error_example(code=code, message=message, details=details),
            }
        },
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: _response("Unauthorized", "AUTH_UNAUTHORIZED", "X-User-Id header is required"),
    404: _response("Not found", "NOT_FOUND", "Compliance check not found", {"retryable": False}),
    422: _response("Validation error", "INVALID_INPUT", "Content must not be empty", {"retryable": False}),
    500: _response("Internal server error", "INTERNAL_ERROR", "Internal server error"),
}

CHECK_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    **DEFAULT_ERROR_RESPONSES,
    402: _response(
        "Monthly check limit reached",
        "CHECK_LIMIT_REACHED",
        "SafePost Starter includes 3 checks per month; upgrade your plan to run more checks",
        {"retryable": False},
    ),
    403: _response(
        "Feature not included in plan",
        "FEATURE_NOT_ENTITLED",
        "Feature 'image_attachment' is not included in plan 'free'",
        {"retryable": False, "feature": "image_attachment", "plan_key": "free"},
    ),
    502: _response(
        "Compliance engine returned an unusable answer",
        "CONTRACT_VIOLATION",
        "non_compliant verdict must include at least one Critical issue",
        {"retryable": False},
    ),
    503: _response(
        "Compliance engine or guideline corpus unavailable",
        "ENGINE_UNAVAILABLE",
        "Compliance engine request failed",
        {"retryable": True},
    ),
    504: _response(
        "Compliance engine timed out",
        "ENGINE_TIMEOUT",
        "Compliance engine did not respond within 45s",
        {"retryable": True},
    ),
}
