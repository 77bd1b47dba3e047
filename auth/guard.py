"""
auth/guard.py -- Access Guard rules, independent of the web framework.

A request moves UNAUTHENTICATED -> AUTHENTICATED -> AUTHORIZED:
  authenticate()  token valid and user active, else InvalidToken
  authorize()     role holds the capability (admin always does), else Forbidden

The remaining checks protect user-management invariants and run before any
write:
  check_self_modification()  nobody demotes or deactivates themselves
  check_admin_target()       only the admin touches the admin account or
                             hands out the admin role
  check_single_admin()       a second admin is a Conflict

auth/dependencies.py wires these into FastAPI; tests call them directly.
"""

from __future__ import annotations

from auth.errors import Conflict, Forbidden, InvalidToken
from auth.models import Capability, Role, User
from auth.permissions import PermissionRegistry
from auth.store import UserStore
from auth.tokens import SessionIssuer


def authenticate(token: str | None, sessions: SessionIssuer, store: UserStore) -> User:
    """Resolve a bearer token to an active user. Raises InvalidToken."""
    if not token:
        raise InvalidToken()
    claims = sessions.validate(token)
    user = store.get_active_by_id(claims.user_id)
    if user is None:
        raise InvalidToken()
    return user


def authorize(user: User, capability: Capability, registry: PermissionRegistry) -> None:
    """Raise Forbidden unless user's role grants capability. Admin bypasses the flags."""
    if user.role is Role.admin:
        return
    if not registry.get(user.role).allows(capability):
        raise Forbidden()


def require_role(user: User, role: Role) -> None:
    if user.role is not role:
        raise Forbidden("Admin access required." if role is Role.admin else None)


def check_self_modification(
    actor: User,
    target_id: int,
    role: Role | None = None,
    is_active: bool | None = None,
) -> None:
    """Refuse self-targeted changes that demote or deactivate the actor."""
    if actor.id != target_id:
        return
    if (role is not None and Role(role) is not Role.admin) or is_active is False:
        raise Forbidden("Cannot modify your own admin role or deactivate your own account.")


def check_admin_target(actor: User, target: User | None = None, role: Role | None = None) -> None:
    """Only the admin may modify the admin account or assign the admin role."""
    if actor.role is Role.admin:
        return
    if (target is not None and target.role is Role.admin) or (role is not None and Role(role) is Role.admin):
        raise Forbidden("Only the administrator can manage administrator accounts.")


def check_single_admin(store: UserStore, role: Role, target_id: int | None = None) -> None:
    """Raise Conflict if role is admin and someone other than target_id already is."""
    if Role(role) is not Role.admin:
        return
    if store.find_admin(exclude_id=target_id) is not None:
        raise Conflict()
