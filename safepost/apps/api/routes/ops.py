from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from safepost.apps.api.deps import Principal, get_current_principal
from safepost.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from safepost.apps.api.response import SuccessEnvelope, success_response
from safepost.services.telemetry import availability, counters_snapshot, external_call_stats, p95_latency


router = APIRouter(prefix="/ops", tags=["ops"], responses=DEFAULT_ERROR_RESPONSES)


class OpsMetricsResponse(BaseModel):
    window_s: int
    availability: float | None
    p95_latency_ms: float | None
    external_calls: dict[str, dict[str, float | int | None]]
    counters: dict[str, int]


@router.get("/metrics", response_model=SuccessEnvelope[OpsMetricsResponse])
async def ops_metrics(
    request: Request,
    window_s: int = Query(default=300, ge=1, le=86400),
    _principal: Principal = Depends(get_current_principal),
) -> dict:
    # In-process only; every worker reports its own numbers.
    payload = OpsMetricsResponse(
        window_s=window_s,
        availability=availability(window_s),
        p95_latency_ms=p95_latency(window_s, path_prefix="/v1/checks"),
        external_calls=external_call_stats(window_s),
        counters=counters_snapshot(),
    )
    return success_response(request=request, data=payload)
