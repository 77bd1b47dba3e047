"""
auth/bootstrap.py -- First-boot setup: default permissions and the first admin.

Called from the API lifespan and from the `create-admin` CLI command. Both
steps are idempotent, so running them on every start is safe.
"""

from __future__ import annotations

import logging

from auth.errors import Conflict, ValidationFailed
from auth.models import Role, User
from auth.passwords import MAX_PASSWORD_BYTES, hash_password, password_too_long
from auth.permissions import PermissionRegistry
from auth.store import UserStore

logger = logging.getLogger("taskflow.auth")


def create_admin(store: UserStore, email: str, name: str, password: str) -> int:
    """Create the administrator account. Raises Conflict if one already exists."""
    if store.find_admin() is not None:
        raise Conflict()
    if store.get_by_email(email) is not None:
        raise ValidationFailed("User already exists.")
    if len(password) < 8:
        raise ValidationFailed("Password must be at least 8 characters.")
    if password_too_long(password):
        raise ValidationFailed(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
    user_id = store.create_user(
        User(
            email=email,
            name=name,
            role=Role.admin,
            hashed_password=hash_password(password),
            department="Management",
            position="System Manager",
        )
    )
    logger.info("Administrator account created (id=%d)", user_id)
    return user_id


def bootstrap(
    store: UserStore,
    registry: PermissionRegistry,
    admin_email: str,
    admin_name: str,
    admin_password: str,
) -> int | None:
    """Seed default permissions, then the admin if configured and missing.

    Returns the admin's id when one was created, else None.
    """
    registry.bootstrap()
    if store.find_admin() is not None:
        return None
    if not admin_password:
        logger.warning(
            "No administrator account exists. Set ADMIN_PASSWORD or run `python main.py create-admin` to create one."
        )
        return None
    return create_admin(store, admin_email, admin_name, admin_password)
