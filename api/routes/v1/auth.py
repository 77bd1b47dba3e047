"""
api/routes/v1/auth.py -- Session endpoints.

Routes:
  POST /api/v1/auth/login   -- email/password login; returns a bearer token
  POST /api/v1/auth/logout  -- records the logout (requires auth)
  GET  /api/v1/auth/me      -- current user and effective permissions

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT) on top of the
  per-account lockout in auth/lockout.py.
  auth.login.login() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every login response, success or failure.
  Logout does not revoke the token. Sessions are stateless and a token
  remains valid until it expires.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.audit import client_ip, record_activity
from api.errors import auth_error_response
from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse, MessageResponse, PermissionFlags, UserResponse
from auth.dependencies import get_current_user
from auth.errors import AuthError
from auth.login import login
from auth.models import User
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:  requires auth (get_current_user)
# - GET  /api/v1/auth/me:      requires auth (get_current_user)
router = APIRouter()


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login_route(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    401 invalid_credentials for an unknown email or a wrong password (the
    two are indistinguishable), 423 account_locked during a lockout window,
    401 account_deactivated for a deactivated account.
    """
    state = request.app.state
    try:
        user, token = login(
            state.user_store,
            state.lockout,
            state.sessions,
            body.email,
            body.password,
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
    except AuthError as exc:
        resp = auth_error_response(exc)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            expires_in=int(state.sessions.ttl.total_seconds()),
            user=UserResponse.from_user(user),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, current_user: User = Depends(get_current_user)) -> MessageResponse:
    """Record the logout. The client discards its token."""
    record_activity(request, current_user.id, "logout", f"User {current_user.name} logged out")
    return MessageResponse(message="Logout successful")


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, current_user: User = Depends(get_current_user)) -> MeResponse:
    permissions = request.app.state.permissions.get(current_user.role)
    return MeResponse(user=UserResponse.from_user(current_user), permissions=PermissionFlags.from_set(permissions))
