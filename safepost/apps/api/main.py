from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from safepost.apps.api.errors import (
    http_exception_handler,
    safepost_exception_handler,
    starlette_http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from safepost.apps.api.response import API_VERSION
from safepost.apps.api.routes.checks import router as checks_router
from safepost.apps.api.routes.entitlements import router as entitlements_router
from safepost.apps.api.routes.guidelines import router as guidelines_router
from safepost.apps.api.routes.health import router as health_router
from safepost.apps.api.routes.ops import router as ops_router
from safepost.apps.api.routes.rewrites import router as rewrites_router
from safepost.core.config import get_settings
from safepost.core.errors import SafePostError
from safepost.core.logging import configure_logging
from safepost.services.telemetry import record_request


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(title="SafePost API", version=API_VERSION)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        latency_ms = (time.monotonic() - start) * 1000.0
        record_request(path=request.url.path, status_code=response.status_code, latency_ms=latency_ms)
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    @app.exception_handler(SafePostError)
    async def _safepost_exception_handler(request: Request, exc: SafePostError):
        return await safepost_exception_handler(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await starlette_http_exception_handler(request, exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    prefix = f"/{API_VERSION}"
    app.include_router(health_router, prefix=prefix)
    app.include_router(guidelines_router, prefix=prefix)
    app.include_router(entitlements_router, prefix=prefix)
    app.include_router(checks_router, prefix=prefix)
    app.include_router(rewrites_router, prefix=prefix)
    app.include_router(ops_router, prefix=prefix)

    @app.get("/v1/openapi.json", include_in_schema=False)
    async def openapi_json() -> JSONResponse:
        return JSONResponse(app.openapi())

    @app.get("/v1/docs", include_in_schema=False)
    async def v1_docs() -> HTMLResponse:
        return get_swagger_ui_html(openapi_url="/v1/openapi.json", title="SafePost API v1")

    @app.get("/docs", include_in_schema=False)
    async def docs_redirect() -> RedirectResponse:
        return RedirectResponse(url="/v1/docs")

    logger.info("app_created name=%s llm_provider=%s", settings.app_name, settings.llm_provider)
    return app


app = create_app()
