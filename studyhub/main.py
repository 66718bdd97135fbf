"""
StudyHub

FastAPI app serving the blogging JSON API under /api and the server-rendered
pages that sit on top of it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from studyhub.config import get_settings
from studyhub.errors import StudyHubError, validation_message
from studyhub.middleware import (
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
    configure_logging,
)
from studyhub.routers import categories, posts, profile, tags, upload, views
from studyhub.services.blob_storage import check_storage_connectivity
from studyhub.services.database import (
    check_database_connectivity,
    dispose_engine,
    init_models,
)
from studyhub.services.http_client import close_shared_client

logger = logging.getLogger(__name__)

settings = get_settings()

API_PREFIX = "/api"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    s = get_settings()
    configure_logging(s.log_level)

    missing = s.missing_required()
    if missing and s.is_production:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    if missing:
        logger.warning(
            "Running degraded, missing configuration: %s", ", ".join(missing)
        )

    if s.database_url and s.database_auto_create:
        await init_models()

    yield

    await close_shared_client()
    await dispose_engine()


app = FastAPI(
    title="StudyHub API",
    debug=settings.debug,
    description="Blogging platform for study notes and guides",
    version=VERSION,
    lifespan=lifespan,
)

# Request IDs and security headers on every response
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware, api_prefix=API_PREFIX)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(posts.router, prefix=API_PREFIX)
app.include_router(categories.router, prefix=API_PREFIX)
app.include_router(tags.router, prefix=API_PREFIX)
app.include_router(upload.router, prefix=API_PREFIX)
app.include_router(profile.router, prefix=API_PREFIX)
app.include_router(views.router)


def _is_api_request(request: Request) -> bool:
    return request.url.path.startswith(API_PREFIX)


def _error_response(request: Request, status_code: int, message: str) -> Response:
    if _is_api_request(request):
        return JSONResponse(status_code=status_code, content={"error": message})
    return views.render_error_page(request, status_code, message)


@app.exception_handler(StudyHubError)
async def studyhub_error_handler(request: Request, exc: StudyHubError) -> Response:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    return _error_response(request, 400, validation_message(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Response:
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, 500, "Internal server error")


def _check_config() -> str:
    """Verify required configuration is loaded. Returns 'ok' or 'fail'."""
    return "fail" if get_settings().missing_required() else "ok"


async def _run_health_checks() -> dict[str, Any]:
    """Run all health checks, returning the full response body."""
    config_status = _check_config()
    database_status = "ok" if await check_database_connectivity() else "fail"
    # The blob client is synchronous; keep it off the event loop
    storage_ok = await asyncio.to_thread(check_storage_connectivity)
    storage_status = "ok" if storage_ok else "fail"

    checks = {
        "config": config_status,
        "database": database_status,
        "storage": storage_status,
    }
    failed = [k for k, v in checks.items() if v != "ok"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded, failed: %s", ", ".join(failed))
    else:
        overall = "ok"

    return {
        "status": overall,
        "service": "studyhub",
        "version": VERSION,
        "checks": checks,
    }


@app.get(f"{API_PREFIX}/health")
async def health_check() -> JSONResponse:
    """Health check verifying service dependencies."""
    result = await _run_health_checks()
    return JSONResponse(content=result, status_code=200)
