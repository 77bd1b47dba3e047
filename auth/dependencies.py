"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Every protected endpoint requires `Authorization: Bearer <token>`.

get_current_user()       401 (InvalidToken) unless the token is valid and the
                         user still exists and is active.
require_admin()          additionally 403 unless the user is the admin.
require_capability(cap)  additionally 403 unless the user's role grants cap
                         (the admin always passes).

The helpers raise auth.errors exceptions; api/main.py renders them.

Layer rule: no imports from api/ or tasks/. May import fastapi because this
module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.guard import authenticate, authorize, require_role
from auth.models import Capability, Role, User


def bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    state = request.app.state
    return authenticate(bearer_token(request), state.sessions, state.user_store)


def require_admin(user: User = Depends(get_current_user)) -> User:
    require_role(user, Role.admin)
    return user


def require_capability(capability: Capability) -> Callable[..., User]:
    """Build a dependency that enforces one capability.

        @router.post("/tasks")
        async def route(user: User = Depends(require_capability(Capability.create_task))): ...
    """

    def dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        authorize(user, capability, request.app.state.permissions)
        return user

    dependency.__name__ = f"require_{capability.value}"
    return dependency
