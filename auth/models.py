"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic beyond conversion).
Stores and routes do the work.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


class Capability(str, Enum):
    create_task = "create_task"
    edit_task = "edit_task"
    delete_task = "delete_task"
    view_users = "view_users"
    add_users = "add_users"
    edit_users = "edit_users"
    remove_users = "remove_users"
    view_activity_logs = "view_activity_logs"
    upload_files = "upload_files"
    download_files = "download_files"
    delete_files = "delete_files"


@dataclass(frozen=True)
class PermissionSet:
    """One boolean per capability. Every field defaults to denied.

    The stored form is a JSON object keyed by capability name. from_dict()
    ignores unknown keys and treats missing keys as False, so a partially
    written or older row never grants anything by accident.
    """

    create_task: bool = False
    edit_task: bool = False
    delete_task: bool = False
    view_users: bool = False
    add_users: bool = False
    edit_users: bool = False
    remove_users: bool = False
    view_activity_logs: bool = False
    upload_files: bool = False
    download_files: bool = False
    delete_files: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> PermissionSet:
        known = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    def allows(self, capability: Capability) -> bool:
        return getattr(self, capability.value)


@dataclass
class User:
    """An identity record in TaskFlow.

    email is unique and stored lower-case. Users are never hard-deleted;
    is_active=False is the deletion substitute.

    login_attempts / locked_until make up the lockout state. locked_until is
    only meaningful while it lies in the future.
    """

    email: str
    name: str
    role: Role
    id: int | None = None
    hashed_password: str | None = None
    department: str | None = None
    position: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    is_active: bool = True
    login_attempts: int = 0
    locked_until: datetime | None = None
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    created_by: int | None = None


@dataclass(frozen=True)
class SessionClaims:
    """The identity a validated session token vouches for."""

    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime


@dataclass
class Activity:
    """Append-only audit entry. user_id is None for failed logins on unknown emails."""

    activity_type: str
    description: str
    user_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: int | None = None
    created_at: str | None = None
    user_name: str | None = None  # filled by list_activities() join
    user_role: str | None = None
