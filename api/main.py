"""
api/main.py -- FastAPI application entry point for TaskFlow.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan handles startup (stores, permission defaults, first admin, session
issuer) and shutdown (close DB connections) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.errors import auth_error_response, error_response
from api.limiter import limiter
from api.models import HealthResponse
from api.routes.v1.activities import router as activities_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.permissions import router as permissions_router
from api.routes.v1.tasks import router as tasks_router
from api.routes.v1.users import router as users_router
from auth.bootstrap import bootstrap
from auth.errors import AuthError
from auth.lockout import LockoutPolicy
from auth.permissions import PermissionRegistry
from auth.store import UserStore
from auth.tokens import SessionIssuer
from core.config import get_settings
from tasks.store import TaskStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskflow.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open stores and seed auth state on startup; dispose engines on shutdown.

    Order:
      1. Stores first -- everything else reads from them.
      2. Permission defaults and the first admin -- before any request can
         reach the access guard.
      3. Lockout policy and session issuer -- pure configuration.
    """
    logger.info("TaskFlow API starting up")
    settings = get_settings()
    app.state.user_store = UserStore(settings.auth_db_url) if settings.auth_db_url else UserStore()
    app.state.task_store = TaskStore(settings.tasks_db_url) if settings.tasks_db_url else TaskStore()
    app.state.permissions = PermissionRegistry(app.state.user_store)
    bootstrap(
        app.state.user_store,
        app.state.permissions,
        settings.admin_email,
        settings.admin_name,
        settings.admin_password,
    )
    app.state.lockout = LockoutPolicy.from_settings(app.state.user_store)
    app.state.sessions = SessionIssuer.from_settings()
    logger.info("Auth initialized (token ttl=%ss)", settings.token_expire_seconds)

    yield

    app.state.task_store.close()
    app.state.user_store.close()
    logger.info("TaskFlow API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TaskFlow API",
    description="Role-based task management: sessions, permissions, users, tasks and activity.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# slowapi finds the limiter on app.state.
app.state.limiter = limiter


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
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(permissions_router, prefix="/api/v1", tags=["Permissions"])
app.include_router(activities_router, prefix="/api/v1", tags=["Activity"])
app.include_router(tasks_router, prefix="/api/v1", tags=["Tasks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler answers with the ErrorResponse envelope: {success: false,
# error: {code, message, detail}}.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render domain errors raised by the access guard, login and routes."""
    if exc.status_code == 403:
        logger.info("Forbidden: %s %s (%s)", request.method, request.url.path, exc.message)
    return auth_error_response(exc)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = error_response(429, "rate_limited", "Too many requests.", detail=str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed body, bad enum value or missing field -> 400 validation_error."""
    return error_response(400, "validation_error", "Request validation failed.", detail=str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the client only sees a generic internal_error."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No authentication and no rate limit -- load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and database status."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
