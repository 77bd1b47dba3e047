"""
tasks/store.py -- SQLAlchemy-backed persistence layer for tasks.

Pattern: Repository + Data Mapper, same as auth/store.py. TaskStore is the
repository; _row_to_task is the mapper. Route handlers never touch SQL.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore()
    task_id = store.create_task(Task(title="Ship it", created_by=1))
    tasks = store.list_tasks(status="pending")
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from tasks.models import Task

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'taskflow_tasks.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(500), nullable=False),
    Column("description", Text),
    Column("priority", String(20), nullable=False, server_default="medium"),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("due_date", String(10)),  # YYYY-MM-DD
    Column("assignee_id", Integer),
    Column("created_by", Integer, nullable=False),
    Column("estimated_hours", Float),
    Column("actual_hours", Float),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
    Column("completed_at", String(40)),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TaskStore:
    """Repository for Task entities."""

    _UPDATABLE: set = {
        "title",
        "description",
        "priority",
        "status",
        "due_date",
        "assignee_id",
        "estimated_hours",
        "actual_hours",
    }

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_task(self, task: Task) -> int:
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    title=task.title,
                    description=task.description,
                    priority=task.priority,
                    status=task.status,
                    due_date=task.due_date,
                    assignee_id=task.assignee_id,
                    created_by=task.created_by,
                    estimated_hours=task.estimated_hours,
                    actual_hours=task.actual_hours,
                    created_at=now,
                    updated_at=now,
                    completed_at=now if task.status == "completed" else None,
                )
            )
            return result.inserted_primary_key[0]

    def get_task(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(
        self,
        involving: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assignee_id: Optional[int] = None,
    ) -> list[Task]:
        """Return tasks newest first.

        involving restricts the result to tasks the given user created or is
        assigned to (the employee view). The other arguments are plain filters.
        """
        query = _tasks.select()
        if involving is not None:
            query = query.where((_tasks.c.assignee_id == involving) | (_tasks.c.created_by == involving))
        if status:
            query = query.where(_tasks.c.status == status)
        if priority:
            query = query.where(_tasks.c.priority == priority)
        if assignee_id is not None:
            query = query.where(_tasks.c.assignee_id == assignee_id)
        query = query.order_by(_tasks.c.created_at.desc(), _tasks.c.id.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: int, **fields) -> bool:
        """Update mutable task fields. Stamps completed_at when status becomes completed."""
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Unknown task fields: {unknown!r}")
        now = _now_iso()
        fields["updated_at"] = now
        if "status" in fields:
            fields["completed_at"] = now if fields["status"] == "completed" else None
        with self.engine.begin() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(**fields))
        return result.rowcount > 0

    def delete_task(self, task_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        priority=row.priority,
        status=row.status,
        due_date=row.due_date,
        assignee_id=row.assignee_id,
        created_by=row.created_by,
        estimated_hours=row.estimated_hours,
        actual_hours=row.actual_hours,
        created_at=row.created_at,
        updated_at=row.updated_at,
        completed_at=row.completed_at,
    )
