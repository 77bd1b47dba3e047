"""
api/audit.py -- Activity-log helper for route handlers.

Captures the client address and User-Agent from the request so handlers only
say what happened. The write goes through UserStore.log_activity().
"""

from typing import Optional

from fastapi import Request

from auth.models import Activity


def record_activity(request: Request, user_id: Optional[int], activity_type: str, description: str) -> None:
    request.app.state.user_store.log_activity(
        Activity(
            user_id=user_id,
            activity_type=activity_type,
            description=description,
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
    )


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None
