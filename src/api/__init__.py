"""
REST API layer for Burnout Buddy.

Provides:
- FastAPI application with CORS middleware
- Catch-all bearer-token gate for everything but health, demo auth and docs
- Exception handlers mapping application errors to the response envelope
- API versioning under /api/v1 prefix
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.api.auth import AuthService, validate_secrets
from src.api.routes import router
from src.api.schemas import error_response
from src.config.settings import AppConfig, load_config
from src.content.practices import PRACTICES, validate_catalog
from src.lib.errors import (
    AUTH_REQUIRED,
    INTERNAL_ERROR,
    NOT_FOUND,
    RATE_LIMITED,
    VALIDATION_ERROR,
    classify_exception,
)
from src.lib.exceptions import BurnoutBuddyException, ConfigurationError
from src.services.gamification import StoryGenerator
from src.services.history_store import (
    DatabaseHistoryStore,
    HistoryLocks,
    LocalHistoryStore,
    create_session_factory,
)
from src.services.llm_client import LLMClient
from src.services.mood_analysis import MoodAnalyzer

logger = logging.getLogger(__name__)

_ALLOWED_HEADERS: list[str] = [
    "Authorization",
    "Content-Type",
    "Accept",
    "X-Request-ID",
]

# Paths that do NOT require authentication
_PUBLIC_PATHS: frozenset[str] = frozenset({
    "/health",
    "/api/v1/health",
    "/api/v1/auth/demo",
    "/docs",
    "/redoc",
    "/openapi.json",
})

_STATUS_CODES: dict[int, str] = {
    401: AUTH_REQUIRED,
    404: NOT_FOUND,
    422: VALIDATION_ERROR,
    429: RATE_LIMITED,
}


async def _auth_gate_dispatch(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Deny requests without a bearer token before they reach a route."""
    # CORS preflight (OPTIONS) must pass through
    if request.method == "OPTIONS":
        return await call_next(request)
    path = request.url.path.rstrip("/") or "/"
    if path not in _PUBLIC_PATHS:
        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                status_code=401,
                content=error_response(AUTH_REQUIRED),
                headers={"WWW-Authenticate": "Bearer"},
            )
    return await call_next(request)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BurnoutBuddyException)
    async def app_exception_handler(request: Request, exc: BurnoutBuddyException) -> JSONResponse:
        code, status_code = classify_exception(exc)
        if status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
            message = None if code == INTERNAL_ERROR else str(exc)
        else:
            message = str(exc)
        return JSONResponse(status_code=status_code, content=error_response(code, message))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, INTERNAL_ERROR)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Input validation failed on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response(
                VALIDATION_ERROR,
                details={"fields": [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()]},
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_response(INTERNAL_ERROR))


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Includes:
    - CORS middleware with origins from BUDDY_CORS_ORIGINS
    - Catch-all auth middleware (deny unauthenticated by default)
    - Exception handlers for the response envelope
    - Stores and LLM-backed services on ``app.state``
    - Production: /docs and /redoc disabled

    Raises:
        ConfigurationError: missing secret, unusable practice catalog,
            unknown timezone, or a CORS wildcard in production
    """
    config = config or load_config()
    validate_secrets(config)
    validate_catalog(PRACTICES)
    _ = config.tzinfo  # fail fast on an unknown BUDDY_TIMEZONE

    app = FastAPI(
        title="Burnout Buddy",
        description="Micro-reset recommendations for physicians",
        version="0.1.0",
        docs_url=None if config.is_production else "/docs",
        redoc_url=None if config.is_production else "/redoc",
    )

    app.state.config = config
    app.state.auth_service = AuthService(config=config)
    app.state.local_store = LocalHistoryStore(Path(config.demo_data_dir))
    app.state.database_store = DatabaseHistoryStore(create_session_factory(config.database_url))
    app.state.history_locks = HistoryLocks()
    llm_client = LLMClient.from_config(config)
    app.state.mood_analyzer = MoodAnalyzer(llm_client)
    app.state.story_generator = StoryGenerator(llm_client)

    _register_exception_handlers(app)

    cors_origins = list(config.cors_origins)
    if config.is_production and "*" in cors_origins:
        raise ConfigurationError(
            "BUDDY_CORS_ORIGINS contains wildcard '*' which is forbidden in production. "
            "Specify explicit origins instead."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=_ALLOWED_HEADERS,
    )
    if cors_origins:
        logger.info("CORS enabled for origins: %s", cors_origins)
    else:
        logger.info("CORS: no origins configured (restrictive default)")

    app.add_middleware(BaseHTTPMiddleware, dispatch=_auth_gate_dispatch)

    app.include_router(router)

    @app.get("/health")
    async def root_health_check() -> dict[str, str]:
        """Root health check for infrastructure probes."""
        return {"status": "ok"}

    return app


__all__ = ["create_app", "router"]
