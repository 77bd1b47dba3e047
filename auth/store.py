"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_activity are the mappers.
Route, guard and policy code never touches SQL directly.

Tables:
  users             -- identity, role, active flag, lockout fields
  role_permissions  -- one row per role, capabilities as a JSON object
  activity_logs     -- append-only audit trail

Security:
  All queries use bound parameters. No f-strings in SQL.

  At most one admin: a partial unique index on users(role) WHERE role='admin'
  backs up the application-level check in auth/guard.py. A concurrent second
  promotion fails with IntegrityError instead of silently succeeding.

  Failed-login counting is a single UPDATE (counter + 1, conditional lock)
  inside engine.begin(), so concurrent failures cannot under-count.

DB path: auth/taskflow_auth.db unless AUTH_DB_URL is set.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    case,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine

from auth.models import Activity, Role, User

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'taskflow_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("name", String(255), nullable=False),
    Column("role", String(20), nullable=False, server_default="employee"),
    Column("department", String(100)),
    Column("position", String(100)),
    Column("phone", String(20)),
    Column("avatar_url", Text),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("login_attempts", Integer, nullable=False, server_default="0"),
    Column("locked_until", String(40)),  # ISO 8601, NULL when never locked
    Column("last_login", String(40)),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
    Column("created_by", Integer),
)

Index(
    "uq_users_single_admin",
    _users.c.role,
    unique=True,
    sqlite_where=_users.c.role == Role.admin.value,
    postgresql_where=_users.c.role == Role.admin.value,
)

_role_permissions = Table(
    "role_permissions",
    _metadata,
    Column("role", String(20), primary_key=True),
    Column("permissions", Text, nullable=False),  # JSON object {capability: bool}
    Column("updated_at", String(40), nullable=False),
)

_activity_logs = Table(
    "activity_logs",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer),  # NULL for failed logins on unknown emails
    Column("activity_type", String(50), nullable=False),
    Column("description", Text, nullable=False),
    Column("ip_address", String(45)),
    Column("user_agent", Text),
    Column("created_at", String(40), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for users, role permissions and the activity log.

    Usage:
        store = UserStore()
        store.create_user(User(email="a@x.com", name="A", role=Role.admin, hashed_password=hash_password("secret")))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    # Columns update_user() may touch. Anything else is a programming error.
    _UPDATABLE: set = {
        "name",
        "role",
        "department",
        "position",
        "phone",
        "avatar_url",
        "is_active",
    }

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists or
        if the insert would create a second admin. Callers pre-check both and
        treat IntegrityError as a lost race.
        """
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email.lower(),
                    hashed_password=user.hashed_password,
                    name=user.name,
                    role=Role(user.role).value,
                    department=user.department,
                    position=user.position,
                    phone=user.phone,
                    avatar_url=user.avatar_url,
                    is_active=1 if user.is_active else 0,
                    created_at=now,
                    updated_at=now,
                    created_by=user.created_by,
                )
            )
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key, active or not."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_active_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Deactivated users are reported as missing."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.id == user_id) & (_users.c.is_active == 1))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_admin(self, exclude_id: int | None = None) -> User | None:
        """Return the user holding the admin role, ignoring exclude_id."""
        query = _users.select().where(_users.c.role == Role.admin.value)
        if exclude_id is not None:
            query = query.where(_users.c.id != exclude_id)
        with self.engine.connect() as conn:
            row = conn.execute(query.limit(1)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at.desc(), _users.c.id.desc())).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: see _UPDATABLE. role may be a Role or its string
        value; is_active is converted to int for SQLite.

        Returns True if a row was updated, False if user_id was not found.
        Raises IntegrityError if a concurrent request already promoted
        another admin.
        """
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        fields["updated_at"] = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
        return result.rowcount > 0

    def set_password(self, user_id: int, hashed_password: str) -> bool:
        """Store a new password hash and lift any lockout on the account."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(hashed_password=hashed_password, login_attempts=0, locked_until=None, updated_at=_now_iso())
            )
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Lockout bookkeeping
    # ------------------------------------------------------------------

    def record_failed_attempt(self, user_id: int, threshold: int, lock_until: datetime) -> tuple[int, datetime | None]:
        """Atomically increment login_attempts and lock once it reaches threshold.

        Both assignments in the UPDATE read the pre-update row, so the
        counter and the lock decision are taken from one consistent value.
        The follow-up SELECT runs in the same transaction and sees this
        write only. Returns (new_count, locked_until).
        """
        attempts = _users.c.login_attempts + 1
        with self.engine.begin() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(
                    login_attempts=attempts,
                    locked_until=case((attempts >= threshold, lock_until.isoformat()), else_=_users.c.locked_until),
                )
            )
            row = conn.execute(
                select(_users.c.login_attempts, _users.c.locked_until).where(_users.c.id == user_id)
            ).fetchone()
        if row is None:
            return 0, None
        return row.login_attempts, _parse_ts(row.locked_until)

    def record_successful_login(self, user_id: int, when: datetime) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(login_attempts=0, locked_until=None, last_login=when.isoformat())
            )

    def clear_lockout(self, user_id: int) -> bool:
        """Administrative unlock: zero the counter and drop any lockout."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(login_attempts=0, locked_until=None)
            )
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Role permissions
    # ------------------------------------------------------------------

    def get_role_permissions(self, role: str) -> dict | None:
        """Return the stored capability mapping for a role, or None if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_role_permissions.c.permissions).where(_role_permissions.c.role == role)
            ).fetchone()
        return json.loads(row.permissions) if row is not None else None

    def all_role_permissions(self) -> dict[str, dict]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(_role_permissions).order_by(_role_permissions.c.role)).fetchall()
        return {r.role: json.loads(r.permissions) for r in rows}

    def put_role_permissions(self, role: str, permissions: dict) -> None:
        """Overwrite a role's capability mapping in one statement (INSERT OR REPLACE)."""
        with self.engine.begin() as conn:
            conn.execute(
                _role_permissions.insert()
                .prefix_with("OR REPLACE")
                .values(role=role, permissions=json.dumps(permissions, sort_keys=True), updated_at=_now_iso())
            )

    def seed_role_permissions(self, defaults: dict[str, dict]) -> int:
        """Insert defaults for roles that have no stored row yet. Returns rows inserted.

        INSERT OR IGNORE keeps this idempotent: an admin's edits are never
        overwritten on restart.
        """
        inserted = 0
        with self.engine.begin() as conn:
            for role, permissions in defaults.items():
                result = conn.execute(
                    _role_permissions.insert()
                    .prefix_with("OR IGNORE")
                    .values(role=role, permissions=json.dumps(permissions, sort_keys=True), updated_at=_now_iso())
                )
                inserted += result.rowcount
        return inserted

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def log_activity(self, activity: Activity) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                _activity_logs.insert().values(
                    user_id=activity.user_id,
                    activity_type=activity.activity_type,
                    description=activity.description,
                    ip_address=activity.ip_address,
                    user_agent=activity.user_agent,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def list_activities(self, limit: int = 200) -> list[Activity]:
        """Return the newest activity entries with the acting user's name and role."""
        query = (
            select(
                _activity_logs,
                _users.c.name.label("user_name"),
                _users.c.role.label("user_role"),
            )
            .select_from(_activity_logs.outerjoin(_users, _activity_logs.c.user_id == _users.c.id))
            .order_by(_activity_logs.c.id.desc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_activity(r) for r in rows]

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(select(1)).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        name=row.name,
        role=Role(row.role),
        department=row.department,
        position=row.position,
        phone=row.phone,
        avatar_url=row.avatar_url,
        is_active=bool(row.is_active),
        login_attempts=row.login_attempts or 0,
        locked_until=_parse_ts(row.locked_until),
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
        created_by=row.created_by,
    )


def _row_to_activity(row) -> Activity:
    return Activity(
        id=row.id,
        user_id=row.user_id,
        activity_type=row.activity_type,
        description=row.description,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        created_at=row.created_at,
        user_name=row.user_name,
        user_role=row.user_role,
    )
