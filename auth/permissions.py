"""
auth/permissions.py -- Role -> PermissionSet registry backed by UserStore.

The built-in defaults are written to the role_permissions table once, at
first boot (bootstrap()). From then on every read goes to the store; there is
no long-lived in-memory copy that could drift from what an admin saved.

replace() overwrites a whole role in a single upsert, so a reader never sees
half of an update. Whether the caller is allowed to replace is decided by the
Access Guard (admin only), not here.
"""

from __future__ import annotations

import logging

from auth.models import PermissionSet, Role
from auth.store import UserStore

logger = logging.getLogger("taskflow.auth")

DEFAULT_PERMISSIONS: dict[Role, PermissionSet] = {
    Role.admin: PermissionSet(
        create_task=True,
        edit_task=True,
        delete_task=True,
        view_users=True,
        add_users=True,
        edit_users=True,
        remove_users=True,
        view_activity_logs=True,
        upload_files=True,
        download_files=True,
        delete_files=True,
    ),
    Role.manager: PermissionSet(
        create_task=True,
        edit_task=True,
        view_users=True,
        view_activity_logs=True,
        upload_files=True,
        download_files=True,
        delete_files=True,
    ),
    Role.employee: PermissionSet(
        edit_task=True,
        upload_files=True,
        download_files=True,
    ),
}


class PermissionRegistry:
    def __init__(self, store: UserStore) -> None:
        self.store = store

    def bootstrap(self) -> None:
        """Seed default permission sets for roles that have none stored. Idempotent."""
        defaults = {role.value: perms.to_dict() for role, perms in DEFAULT_PERMISSIONS.items()}
        seeded = self.store.seed_role_permissions(defaults)
        if seeded:
            logger.info("Seeded default permissions for %d role(s)", seeded)

    def get(self, role: Role | str) -> PermissionSet:
        """Return the stored set for role. Unknown or unseeded roles get nothing."""
        stored = self.store.get_role_permissions(_role_value(role))
        if stored is None:
            return PermissionSet()
        return PermissionSet.from_dict(stored)

    def get_all(self) -> dict[Role, PermissionSet]:
        stored = self.store.all_role_permissions()
        result: dict[Role, PermissionSet] = {}
        for role in Role:
            result[role] = PermissionSet.from_dict(stored.get(role.value, {}))
        return result

    def replace(self, role: Role, permissions: PermissionSet) -> None:
        self.store.put_role_permissions(Role(role).value, permissions.to_dict())
        logger.info("Permissions replaced for role %s", Role(role).value)


def _role_value(role: Role | str) -> str:
    return role.value if isinstance(role, Role) else str(role)
