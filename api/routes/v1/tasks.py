"""
api/routes/v1/tasks.py -- Task CRUD, gated by role capabilities.

Routes:
  GET    /api/v1/tasks       -- list (any authenticated user)
  POST   /api/v1/tasks       -- create (create_task)
  PUT    /api/v1/tasks/{id}  -- update (edit_task)
  DELETE /api/v1/tasks/{id}  -- delete (delete_task)

Capability checks run server-side on every call, whatever the UI shows.
On top of them, employees are scoped to their own work: they list and edit
only tasks they created or are assigned to, and delete only tasks they
created. Out-of-scope tasks return 403 rather than 404 for edit/delete,
matching the list view which never shows them.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.audit import record_activity
from api.models import (
    MessageResponse,
    TaskCreate,
    TaskEnvelope,
    TaskListResponse,
    TaskPriorityEnum,
    TaskResponse,
    TaskStatusEnum,
    TaskUpdate,
)
from auth.dependencies import get_current_user, require_capability
from auth.errors import Forbidden, NotFound
from auth.models import Capability, Role, User
from tasks.models import Task
from tasks.store import TaskStore

router = APIRouter()

# Fields a client may explicitly null out. title, priority and status are required.
_CLEARABLE = {"description", "due_date", "assignee_id", "estimated_hours", "actual_hours"}


def _get_task(store: TaskStore, task_id: int) -> Task:
    task = store.get_task(task_id)
    if task is None:
        raise NotFound("Task not found.")
    return task


@router.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    request: Request,
    status: Optional[TaskStatusEnum] = Query(default=None),
    priority: Optional[TaskPriorityEnum] = Query(default=None),
    assignee: Optional[int] = Query(default=None),
    current_user: User = Depends(get_current_user),
) -> TaskListResponse:
    store: TaskStore = request.app.state.task_store
    tasks = store.list_tasks(
        involving=current_user.id if current_user.role is Role.employee else None,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        assignee_id=assignee,
    )
    return TaskListResponse(data=[TaskResponse.from_task(t) for t in tasks])


@router.post("/tasks", response_model=TaskEnvelope, status_code=201)
def create_task(
    request: Request,
    body: TaskCreate,
    current_user: User = Depends(require_capability(Capability.create_task)),
) -> TaskEnvelope:
    store: TaskStore = request.app.state.task_store
    task_id = store.create_task(
        Task(
            title=body.title,
            description=body.description,
            priority=body.priority.value,
            status=body.status.value,
            due_date=body.due_date.isoformat(),
            assignee_id=body.assignee_id,
            created_by=current_user.id,
            estimated_hours=body.estimated_hours,
            actual_hours=body.actual_hours,
        )
    )
    record_activity(request, current_user.id, "task_created", f'Task "{body.title}" created by {current_user.name}')
    return TaskEnvelope(data=TaskResponse.from_task(_get_task(store, task_id)), message="Task created successfully")


@router.put("/tasks/{task_id}", response_model=TaskEnvelope)
def update_task(
    request: Request,
    task_id: int,
    body: TaskUpdate,
    current_user: User = Depends(require_capability(Capability.edit_task)),
) -> TaskEnvelope:
    store: TaskStore = request.app.state.task_store
    task = _get_task(store, task_id)
    if current_user.role is Role.employee and not task.involves(current_user.id):
        raise Forbidden()

    updates = {
        k: v for k, v in body.model_dump(exclude_unset=True, mode="json").items() if v is not None or k in _CLEARABLE
    }
    if updates:
        store.update_task(task_id, **updates)
    updated = _get_task(store, task_id)
    record_activity(request, current_user.id, "task_updated", f'Task "{updated.title}" updated by {current_user.name}')
    return TaskEnvelope(data=TaskResponse.from_task(updated), message="Task updated successfully")


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
def delete_task(
    request: Request,
    task_id: int,
    current_user: User = Depends(require_capability(Capability.delete_task)),
) -> MessageResponse:
    store: TaskStore = request.app.state.task_store
    task = _get_task(store, task_id)
    if current_user.role is Role.employee and task.created_by != current_user.id:
        raise Forbidden()

    store.delete_task(task_id)
    record_activity(request, current_user.id, "task_deleted", f'Task "{task.title}" deleted by {current_user.name}')
    return MessageResponse(message="Task deleted successfully")
