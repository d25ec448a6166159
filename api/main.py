"""
api/main.py -- FastAPI application entry point for the SSO service.

Run with:      python main.py serve
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. request id + request logging (@app.middleware)

Lifespan opens the store and builds the AuthService on startup, and closes
the store on shutdown. Tests replace the lifespan to inject in-memory stores.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError, ErrorKind
from auth.service import AuthService
from core.config import get_settings
from core.logger import setup_logging
from storage.sql import SQLStore

__version__ = "0.1.0"

logger = logging.getLogger("sso.api")

# Single mapping from domain error kind to HTTP status.
# USER_NOT_FOUND never leaves the service; 500 if it ever does.
_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.INVALID_APP_ID: 404,
    ErrorKind.USER_EXISTS: 409,
    ErrorKind.USER_NOT_FOUND: 500,
    ErrorKind.INTERNAL: 500,
}

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_service(store: SQLStore, token_ttl: timedelta, bcrypt_rounds: int) -> AuthService:
    """Wire one store into all three capability slots of the service."""
    return AuthService(
        logging.getLogger("sso.auth"),
        user_saver=store,
        user_provider=store,
        app_provider=store,
        token_ttl=token_ttl,
        bcrypt_rounds=bcrypt_rounds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the store and build the service; close the store on shutdown.

    A store that cannot be reached at startup is fatal: the exception
    propagates and the server refuses to start.
    """
    settings = getattr(app.state, "settings", None) or get_settings()
    setup_logging(settings.env, settings.log_level)
    logger.info("SSO API starting up (env=%s)", settings.env)
    store = SQLStore(settings.database_url)
    store.ping()
    app.state.store = store
    app.state.auth_service = build_service(store, settings.token_ttl, settings.bcrypt_rounds)
    app.state.request_timeout = settings.request_timeout_seconds
    logger.info("Auth service initialized (token_ttl=%ss)", settings.token_ttl_seconds)

    yield

    app.state.store.close()
    logger.info("SSO API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SSO API",
    description="Credential issuance: login, registration and admin checks for registered applications.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=["localhost", "127.0.0.1", "*.localhost"],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Request-ID"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request id + request logging middleware
#
# Every request gets an id (caller-supplied X-Request-ID or a fresh uuid4).
# It is stored on request.state, handed to the service inside a
# RequestContext by the route, and echoed back on the response.
#
# A request that runs past app.state.request_timeout seconds answers 504.
# The worker thread of a sync handler is not interrupted; only the response
# is abandoned.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    start = time.perf_counter()
    try:
        response = await asyncio.wait_for(call_next(request), getattr(request.app.state, "request_timeout", None))
    except asyncio.TimeoutError:
        logger.warning("Request timed out: %s %s request_id=%s", request.method, request.url.path, request_id)
        response = JSONResponse(
            status_code=504,
            content=ErrorResponse(
                error=ErrorDetail(code="timeout", message="The request did not complete in time.")
            ).model_dump(),
        )
    ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s %d %.1fms %s request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
        request_id,
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map a domain AuthError to its HTTP status.

    INTERNAL errors keep their detail out of the response body; the service
    has already logged it with the operation name.
    """
    status = _STATUS_BY_KIND.get(exc.kind, 500)
    if status == 500:
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorDetail(code="internal_error", message="An unexpected error occurred.")
            ).model_dump(),
        )
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=exc.kind.value, message=exc.message)).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and whether the database answers."""
    try:
        database = "ok" if request.app.state.store.ping() else "error"
    except Exception:
        logger.exception("Health check: database ping failed")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
