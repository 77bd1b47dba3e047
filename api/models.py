"""
API request and response models for TaskFlow REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Every response carries `success`. Errors use ErrorResponse.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Activity, PermissionSet, Role, User
from auth.passwords import MAX_PASSWORD_BYTES, password_too_long
from tasks.models import Task

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Character cap for the schema. The real limit is MAX_PASSWORD_BYTES of UTF-8,
# checked by _check_password_bytes().
PASSWORD_MAX = 72


def _normalize_email(value: str) -> str:
    return str(value).strip().lower()


def _check_password_bytes(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TaskPriorityEnum(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskStatusEnum(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: ErrorDetail


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        """Trim and lower-case so lookups match the stored form."""
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class UserResponse(BaseModel):
    """Public view of a user. Never includes the hash or lockout internals."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: str
    role: Role
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool
    created_at: str = ""
    last_login: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            department=user.department,
            position=user.position,
            phone=user.phone,
            avatar_url=user.avatar_url,
            is_active=user.is_active,
            created_at=user.created_at or "",
            last_login=user.last_login,
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
    message: str = "Login successful"


class PermissionFlags(BaseModel):
    """Full capability set for one role. Omitted flags are denied; unknown flags are rejected."""

    model_config = ConfigDict(extra="forbid")

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
    def from_set(cls, permissions: PermissionSet) -> "PermissionFlags":
        return cls(**permissions.to_dict())

    def to_set(self) -> PermissionSet:
        return PermissionSet(**self.model_dump())


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    user: UserResponse
    permissions: PermissionFlags


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=PASSWORD_MAX)
    name: str = Field(min_length=1, max_length=255)
    role: Role
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    avatar_url: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        """Trim and lower-case so lookups match the stored form."""
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        """bcrypt cannot take more than 72 bytes; multibyte characters count in full."""
        return _check_password_bytes(value)


class UserUpdate(BaseModel):
    """Request body for PUT /api/v1/users/{id}. name and role are required."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    role: Role
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    avatar_url: Optional[str] = Field(default=None, max_length=2000)
    is_active: Optional[bool] = None


class PasswordReset(BaseModel):
    new_password: str = Field(min_length=8, max_length=PASSWORD_MAX)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class ProfileUpdate(BaseModel):
    """Self-service profile edit. Role and active flag are deliberately absent."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)


class AvatarUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    avatar_url: str = Field(min_length=1, max_length=2000)


class UserEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: UserResponse
    message: Optional[str] = None


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[UserResponse]


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class PermissionsUpdate(BaseModel):
    """Request body for PUT /api/v1/permissions -- replaces one role's set."""

    role: Role
    permissions: PermissionFlags


class PermissionsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: dict[Role, PermissionFlags]


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


class ActivityCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    activity_type: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=1000)


class ActivityResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: Optional[int]
    activity_type: str
    description: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str
    user_name: Optional[str] = None
    user_role: Optional[str] = None

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityResponse":
        return cls(
            id=activity.id,
            user_id=activity.user_id,
            activity_type=activity.activity_type,
            description=activity.description,
            ip_address=activity.ip_address,
            user_agent=activity.user_agent,
            created_at=activity.created_at or "",
            user_name=activity.user_name,
            user_role=activity.user_role,
        )


class ActivityListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[ActivityResponse]


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /api/v1/tasks."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    priority: TaskPriorityEnum
    status: TaskStatusEnum = TaskStatusEnum.pending
    due_date: date
    assignee_id: Optional[int] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)


class TaskUpdate(BaseModel):
    """Request body for PUT /api/v1/tasks/{id}. Only fields sent are changed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    priority: Optional[TaskPriorityEnum] = None
    status: Optional[TaskStatusEnum] = None
    due_date: Optional[date] = None
    assignee_id: Optional[int] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: Optional[str]
    priority: str
    status: str
    due_date: Optional[str]
    assignee_id: Optional[int]
    created_by: int
    estimated_hours: Optional[float]
    actual_hours: Optional[float]
    created_at: str
    updated_at: str
    completed_at: Optional[str]

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=task.status,
            due_date=task.due_date,
            assignee_id=task.assignee_id,
            created_by=task.created_by,
            estimated_hours=task.estimated_hours,
            actual_hours=task.actual_hours,
            created_at=task.created_at,
            updated_at=task.updated_at,
            completed_at=task.completed_at,
        )


class TaskEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: TaskResponse
    message: Optional[str] = None


class TaskListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[TaskResponse]
