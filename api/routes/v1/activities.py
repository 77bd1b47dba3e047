"""
api/routes/v1/activities.py -- Activity log endpoints.

Routes:
  GET  /api/v1/activities  -- newest 200 entries (view_activity_logs)
  POST /api/v1/activities  -- record a client-side event (any authenticated user)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from api.audit import record_activity
from api.models import ActivityCreate, ActivityListResponse, ActivityResponse, MessageResponse
from auth.dependencies import get_current_user, require_capability
from auth.models import Capability, User

router = APIRouter()


@router.get("/activities", response_model=ActivityListResponse)
def list_activities(
    request: Request,
    limit: int = Query(default=200, ge=1, le=200),
    current_user: User = Depends(require_capability(Capability.view_activity_logs)),
) -> ActivityListResponse:
    activities = request.app.state.user_store.list_activities(limit=limit)
    return ActivityListResponse(data=[ActivityResponse.from_activity(a) for a in activities])


@router.post("/activities", response_model=MessageResponse)
def create_activity(
    request: Request,
    body: ActivityCreate,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    record_activity(request, current_user.id, body.activity_type, body.description)
    return MessageResponse(message="Activity logged successfully")
