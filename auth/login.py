"""
auth/login.py -- Password login: store -> lockout -> bcrypt -> session.

Order of checks:
  1. Unknown email: run bcrypt against the dummy hash, then fail with
     InvalidCredentials. Same cost and same error as a wrong password, so
     neither timing nor message reveals whether the account exists.
  2. Locked account: AccountLocked, before the password is even looked at.
     A correct password does not bypass an active lockout.
  3. Wrong password: count the failure (the one side effect that survives a
     failed login), then InvalidCredentials.
  4. Deactivated account: AccountDeactivated. Checked after the password so
     only the account holder learns the account is deactivated.
  5. Success: reset lockout state, stamp last_login, issue a token.

Every outcome is written to the activity log.
"""

from __future__ import annotations

import logging

from auth.errors import AccountDeactivated, AccountLocked, InvalidCredentials
from auth.lockout import LockoutPolicy
from auth.models import Activity, User
from auth.passwords import burn_dummy_check, verify_password
from auth.store import UserStore
from auth.tokens import SessionIssuer

logger = logging.getLogger("taskflow.auth")


def login(
    store: UserStore,
    lockout: LockoutPolicy,
    sessions: SessionIssuer,
    email: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> tuple[User, str]:
    """Authenticate email/password and return (user, session_token).

    Raises InvalidCredentials, AccountLocked or AccountDeactivated.
    """

    def audit(user_id: int | None, activity_type: str, description: str) -> None:
        store.log_activity(
            Activity(
                user_id=user_id,
                activity_type=activity_type,
                description=description,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )

    user = store.get_by_email(email)
    if user is None:
        burn_dummy_check(password)
        audit(None, "login_failed", f"Failed login attempt for email: {email}")
        raise InvalidCredentials()

    try:
        lockout.check_locked(user)
    except AccountLocked:
        audit(user.id, "login_locked", f"Login refused for locked account: {user.name}")
        raise

    if not verify_password(password, user.hashed_password or ""):
        count, _ = lockout.on_failure(user)
        audit(user.id, "login_failed", f"Failed login attempt for user: {user.name} ({count} consecutive)")
        raise InvalidCredentials()

    if not user.is_active:
        audit(user.id, "login_failed", f"Login refused for deactivated user: {user.name}")
        raise AccountDeactivated()

    lockout.on_success(user)
    token = sessions.issue(user.id, user.email)
    audit(user.id, "login", f"User {user.name} logged in")
    logger.info("User %s logged in", user.id)
    return user, token
