"""
api/main.py -- FastAPI application entry point for BudgetTracker.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- adds CORS headers for the browser front-end
  2. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  3. log_requests          -- method, path, status, latency for every request
  4. authentication_gate   -- runs auth.gate.AuthenticationGate; stores the
                              caller's identity on request.state or rejects a
                              banned account with 403

Lifespan builds the stores and services once at startup, puts them on
app.state, and disposes the engines on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.forum import router as forum_router
from api.routes.v1.profile import router as profile_router
from auth.admin import AdminWorkflow
from auth.errors import AccountBanned, AuthError
from auth.gate import AuthenticationGate
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import NO_OWNER, get_settings
from forum.service import ForumService
from forum.store import ForumStore

VERSION = "0.3.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("budgettracker.api")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, account_store: AccountStore, forum_store: ForumStore) -> None:
    """Build every service from the given stores and attach them to app.state.

    Shared by the real lifespan and by the test lifespan in tests/conftest.py
    so both wire the application identically.
    """
    settings = get_settings()
    tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
    app.state.account_store = account_store
    app.state.forum_store = forum_store
    app.state.token_service = tokens
    app.state.gate = AuthenticationGate(account_store, tokens)
    app.state.account_service = AccountService(account_store, tokens, owner_id=settings.owner_id)
    app.state.admin_workflow = AdminWorkflow(account_store, owner_id=settings.owner_id)
    app.state.forum_service = ForumService(forum_store, account_store)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info("BudgetTracker API starting up")
    wire_services(app, AccountStore(settings.database_url), ForumStore(settings.database_url))
    if settings.owner_id == NO_OWNER:
        logger.info("Auth initialized (no configured owner id; OWNER role only)")
    else:
        logger.info("Auth initialized (configured owner id=%s)", settings.owner_id)

    yield

    app.state.forum_store.close()
    app.state.account_store.close()
    logger.info("BudgetTracker API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="BudgetTracker API",
    description="Accounts, admin approval, moderation and community forum for BudgetTracker.",
    version=VERSION,
    lifespan=lifespan,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Authentication gate middleware
#
# One gate run per request. The gate does blocking store I/O, so it runs in
# the threadpool. The identity it returns is request-scoped: it lives on
# request.state for this request only and reaches handlers through
# auth.dependencies, never through a module-level "current user".
# ---------------------------------------------------------------------------


@app.middleware("http")
async def authentication_gate(request: Request, call_next):
    gate: AuthenticationGate = request.app.state.gate
    try:
        identity = await run_in_threadpool(gate.authenticate, request.headers.get("Authorization"))
    except AccountBanned as exc:
        return JSONResponse(
            status_code=403,
            content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
        )
    request.state.identity = identity
    return await call_next(request)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() and @app.middleware both insert at the outside of the
# stack, so the last registration is the outermost layer: CORS -> SlowAPI ->
# log_requests -> authentication_gate.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(profile_router, prefix="/api/v1", tags=["Profile"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])
app.include_router(forum_router, prefix="/api/v1", tags=["Forum"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Translate the auth/forum error taxonomy into HTTP status codes."""
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail)).model_dump(),
    )
    response.headers["Cache-Control"] = "no-store"
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
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
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
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
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    db_ok = request.app.state.account_store.ping()
    return HealthResponse(
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
