from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vokalconnect.apps.api.errors import (
    http_exception_handler,
    starlette_http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from vokalconnect.apps.api.routes.admin import router as admin_router
from vokalconnect.apps.api.routes.assessments import router as assessments_router
from vokalconnect.apps.api.routes.auth import router as auth_router
from vokalconnect.apps.api.routes.businesses import router as businesses_router
from vokalconnect.apps.api.routes.goals import router as goals_router
from vokalconnect.apps.api.routes.health import router as health_router
from vokalconnect.apps.api.routes.intake_questions import router as intake_questions_router
from vokalconnect.apps.api.routes.metrics import router as metrics_router
from vokalconnect.apps.api.routes.oauth import router as oauth_router
from vokalconnect.apps.api.routes.opportunities import router as opportunities_router
from vokalconnect.apps.api.routes.portal import router as portal_router
from vokalconnect.apps.api.routes.publishing import router as publishing_router
from vokalconnect.apps.api.routes.reports import router as reports_router
from vokalconnect.apps.api.routes.scorecards import router as scorecards_router
from vokalconnect.apps.api.routes.tools import router as tools_router
from vokalconnect.core.config import get_settings
from vokalconnect.core.logging import configure_logging


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=get_settings().app_name)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        latency_ms = (time.monotonic() - start) * 1000.0
        logger.debug(
            "request_completed method=%s path=%s status=%s latency_ms=%.1f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            latency_ms,
            request_id,
        )
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await starlette_http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return await http_exception_handler(request, exc)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(portal_router)
    app.include_router(publishing_router)
    app.include_router(scorecards_router)
    app.include_router(assessments_router)
    app.include_router(reports_router)
    app.include_router(opportunities_router)
    app.include_router(metrics_router)
    app.include_router(businesses_router)
    app.include_router(tools_router)
    app.include_router(intake_questions_router)
    app.include_router(admin_router)
    app.include_router(goals_router)
    app.include_router(oauth_router)
    return app


app = create_app()
