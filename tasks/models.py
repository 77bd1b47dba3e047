"""
tasks/models.py -- Domain dataclass for TaskFlow tasks.

Pure data container. Visibility and ownership rules live in
api/routes/v1/tasks.py; persistence lives in tasks/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Task:
    """A unit of work assigned to a user.

    created_by is the author's user id and never changes. Employees may only
    see and edit tasks they created or are assigned to.

    id is None before the record is written to the database.
    """

    title: str
    created_by: int
    description: Optional[str] = None
    priority: str = "medium"  # "low" | "medium" | "high"
    status: str = "pending"  # "pending" | "in-progress" | "completed"
    due_date: Optional[str] = None  # YYYY-MM-DD
    assignee_id: Optional[int] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""
    completed_at: Optional[str] = None

    def involves(self, user_id: int) -> bool:
        return user_id in (self.created_by, self.assignee_id)
