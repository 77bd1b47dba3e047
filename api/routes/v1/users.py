"""
api/routes/v1/users.py -- User management and self-service profile endpoints.

Routes:
  GET    /api/v1/users                 -- list users (view_users)
  POST   /api/v1/users                 -- create user (add_users)
  PUT    /api/v1/users/{id}            -- update user (edit_users)
  DELETE /api/v1/users/{id}            -- deactivate user (remove_users)
  PUT    /api/v1/users/{id}/password   -- set a new password (edit_users)
  POST   /api/v1/users/{id}/unlock     -- clear a login lockout (edit_users)
  GET    /api/v1/user/profile          -- own profile (any authenticated user)
  PUT    /api/v1/user/profile          -- edit own name/department/position/phone
  PUT    /api/v1/user/avatar           -- set own avatar URL

Invariants enforced before any write (auth/guard.py):
  - nobody demotes or deactivates themselves (403 forbidden)
  - only the admin manages the admin account or assigns the admin role (403)
  - at most one admin (400 conflict)
  - email is unique (400 validation_error)

Users are never hard-deleted. DELETE sets is_active=False.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.audit import record_activity
from api.models import (
    AvatarUpdate,
    MessageResponse,
    PasswordReset,
    ProfileUpdate,
    UserCreate,
    UserEnvelope,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from auth.dependencies import get_current_user, require_capability
from auth.errors import Conflict, NotFound, ValidationFailed
from auth.guard import check_admin_target, check_self_modification, check_single_admin
from auth.models import Capability, User
from auth.passwords import hash_password
from auth.store import UserStore

router = APIRouter()


def _get_target(store: UserStore, user_id: int) -> User:
    target = store.get_by_id(user_id)
    if target is None:
        raise NotFound("User not found.")
    return target


def _reload(store: UserStore, user_id: int) -> User:
    user = store.get_by_id(user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    current_user: User = Depends(require_capability(Capability.view_users)),
) -> UserListResponse:
    store: UserStore = request.app.state.user_store
    return UserListResponse(data=[UserResponse.from_user(u) for u in store.list_users()])


@router.post("/users", response_model=UserEnvelope, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    current_user: User = Depends(require_capability(Capability.add_users)),
) -> UserEnvelope:
    store: UserStore = request.app.state.user_store

    check_admin_target(current_user, role=body.role)
    check_single_admin(store, body.role)
    if store.get_by_email(body.email) is not None:
        raise ValidationFailed("User already exists.")

    new_user = User(
        email=body.email,
        name=body.name,
        role=body.role,
        hashed_password=hash_password(body.password),
        department=body.department,
        position=body.position,
        phone=body.phone,
        avatar_url=body.avatar_url,
        created_by=current_user.id,
    )
    try:
        user_id = store.create_user(new_user)
    except IntegrityError as exc:
        # Lost a race against a concurrent create for the same email or role.
        raise Conflict("User could not be created because of a concurrent change.") from exc

    record_activity(request, current_user.id, "user_created", f"User {body.name} created by {current_user.name}")
    return UserEnvelope(data=UserResponse.from_user(_reload(store, user_id)), message="User created successfully")


@router.put("/users/{user_id}", response_model=UserEnvelope)
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdate,
    current_user: User = Depends(require_capability(Capability.edit_users)),
) -> UserEnvelope:
    store: UserStore = request.app.state.user_store

    check_self_modification(current_user, user_id, role=body.role, is_active=body.is_active)
    target = _get_target(store, user_id)
    check_admin_target(current_user, target=target, role=body.role)
    check_single_admin(store, body.role, target_id=user_id)

    updates = body.model_dump(exclude={"is_active"})
    if body.is_active is not None:
        updates["is_active"] = body.is_active
    try:
        store.update_user(user_id, **updates)
    except IntegrityError as exc:
        raise Conflict() from exc

    record_activity(request, current_user.id, "user_updated", f"User {body.name} updated by {current_user.name}")
    return UserEnvelope(data=UserResponse.from_user(_reload(store, user_id)), message="User updated successfully")


@router.delete("/users/{user_id}", response_model=UserEnvelope)
def deactivate_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_capability(Capability.remove_users)),
) -> UserEnvelope:
    """Soft-delete: the record stays, the account can no longer log in or use tokens."""
    store: UserStore = request.app.state.user_store

    check_self_modification(current_user, user_id, is_active=False)
    target = _get_target(store, user_id)
    check_admin_target(current_user, target=target)

    store.update_user(user_id, is_active=False)
    record_activity(
        request, current_user.id, "user_deactivated", f"User {target.name} deactivated by {current_user.name}"
    )
    return UserEnvelope(data=UserResponse.from_user(_reload(store, user_id)), message="User deactivated")


@router.put("/users/{user_id}/password", response_model=MessageResponse)
def reset_password(
    request: Request,
    user_id: int,
    body: PasswordReset,
    current_user: User = Depends(require_capability(Capability.edit_users)),
) -> MessageResponse:
    store: UserStore = request.app.state.user_store

    target = _get_target(store, user_id)
    check_admin_target(current_user, target=target)

    store.set_password(user_id, hash_password(body.new_password))
    record_activity(
        request, current_user.id, "password_changed", f"Password changed for user {user_id} by {current_user.name}"
    )
    return MessageResponse(message="Password updated successfully")


@router.post("/users/{user_id}/unlock", response_model=MessageResponse)
def unlock_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_capability(Capability.edit_users)),
) -> MessageResponse:
    store: UserStore = request.app.state.user_store

    target = _get_target(store, user_id)
    check_admin_target(current_user, target=target)

    store.clear_lockout(user_id)
    record_activity(request, current_user.id, "user_unlocked", f"User {target.name} unlocked by {current_user.name}")
    return MessageResponse(message="Account unlocked")


# ---------------------------------------------------------------------------
# Self-service profile
# ---------------------------------------------------------------------------


@router.get("/user/profile", response_model=UserEnvelope)
def get_profile(current_user: User = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(data=UserResponse.from_user(current_user))


@router.put("/user/profile", response_model=UserEnvelope)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> UserEnvelope:
    """Edit one's own descriptive fields. Role and active flag cannot be changed here."""
    store: UserStore = request.app.state.user_store
    store.update_user(current_user.id, **body.model_dump())
    record_activity(request, current_user.id, "profile_updated", f"Profile updated by {current_user.name}")
    return UserEnvelope(
        data=UserResponse.from_user(_reload(store, current_user.id)),
        message="Profile updated successfully",
    )


@router.put("/user/avatar", response_model=MessageResponse)
def update_avatar(
    request: Request,
    body: AvatarUpdate,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    store: UserStore = request.app.state.user_store
    if not body.avatar_url.startswith(("https://", "http://", "data:image/")):
        raise ValidationFailed("Avatar URL must be an http(s) or data:image URL.")
    store.update_user(current_user.id, avatar_url=body.avatar_url)
    record_activity(request, current_user.id, "avatar_updated", f"Avatar updated by {current_user.name}")
    return MessageResponse(message="Avatar updated successfully")
