"""
api/routes/v1/permissions.py -- Role permission administration (admin only).

Routes:
  GET /api/v1/permissions  -- every role's capability set
  PUT /api/v1/permissions  -- replace one role's capability set

PUT replaces the whole set for the role in one upsert. Flags left out of the
body are stored as denied; unknown flag names are rejected as validation
errors.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.audit import record_activity
from api.models import MessageResponse, PermissionFlags, PermissionsResponse, PermissionsUpdate
from auth.dependencies import require_admin
from auth.models import User

router = APIRouter()


@router.get("/permissions", response_model=PermissionsResponse)
def get_permissions(request: Request, current_user: User = Depends(require_admin)) -> PermissionsResponse:
    registry = request.app.state.permissions
    return PermissionsResponse(
        data={role: PermissionFlags.from_set(perms) for role, perms in registry.get_all().items()}
    )


@router.put("/permissions", response_model=MessageResponse)
def replace_permissions(
    request: Request,
    body: PermissionsUpdate,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    request.app.state.permissions.replace(body.role, body.permissions.to_set())
    record_activity(
        request, current_user.id, "permissions_updated", f"Permissions updated for role {body.role.value}"
    )
    return MessageResponse(message="Permissions updated successfully")
