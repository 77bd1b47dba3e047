#!/usr/bin/env python3
"""
TaskFlow -- operator commands for the access-control store.

Usage:
  python main.py create-admin --email admin@taskflow.com --name "System Administrator"
  python main.py unlock ops@taskflow.com
  python main.py permissions
  python main.py permissions --role manager

Environment variables:
  AUTH_DB_URL   SQLAlchemy URL of the auth database (default: auth/taskflow_auth.db)
  SECRET_KEY    Required unless DEBUG=true (read by the shared settings loader)
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.bootstrap import create_admin
from auth.errors import AuthError
from auth.models import Capability, Role
from auth.permissions import PermissionRegistry
from auth.store import UserStore
from core.config import get_settings


def _open_store() -> UserStore:
    settings = get_settings()
    return UserStore(settings.auth_db_url) if settings.auth_db_url else UserStore()


def _read_password(prompt: str = "Password: ") -> Optional[str]:
    """Prompt twice without echo. Returns None when the entries differ."""
    first = getpass.getpass(prompt)
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def cmd_create_admin(store: UserStore, args: argparse.Namespace) -> int:
    password = args.password or _read_password()
    if password is None:
        return 1
    registry = PermissionRegistry(store)
    registry.bootstrap()
    try:
        user_id = create_admin(store, args.email, args.name, password)
    except AuthError as e:
        print(f"  [!] {e.message}")
        return 1
    print(f"Administrator {args.email} created (id {user_id}).")
    return 0


def cmd_unlock(store: UserStore, args: argparse.Namespace) -> int:
    user = store.get_by_email(args.email)
    if user is None:
        print(f"  [!] No user with email '{args.email}'.")
        return 1
    store.clear_lockout(user.id)
    print(f"Lockout cleared for {user.email}.")
    return 0


def cmd_permissions(store: UserStore, args: argparse.Namespace) -> int:
    registry = PermissionRegistry(store)
    roles = [Role(args.role)] if args.role else list(Role)
    all_sets = registry.get_all()
    width = max(len(c.value) for c in Capability)
    for role in roles:
        print(f"\n{role.value}")
        print("─" * (width + 6))
        perms = all_sets[role]
        for capability in Capability:
            mark = "yes" if perms.allows(capability) else "-"
            print(f"  {capability.value:<{width}}  {mark}")
    print()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="taskflow",
        description="Administrative commands for TaskFlow users and permissions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-admin --email admin@taskflow.com
  python main.py unlock ops@taskflow.com
  python main.py permissions --role employee
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_admin = sub.add_parser("create-admin", help="Create the single administrator account")
    p_admin.add_argument("--email", default=get_settings().admin_email, help="Admin email address")
    p_admin.add_argument("--name", default=get_settings().admin_name, help="Admin display name")
    p_admin.add_argument(
        "--password",
        default=None,
        help="Admin password (prompted without echo when omitted)",
    )
    p_admin.set_defaults(func=cmd_create_admin)

    p_unlock = sub.add_parser("unlock", help="Clear the login lockout on an account")
    p_unlock.add_argument("email", help="Email of the locked account")
    p_unlock.set_defaults(func=cmd_unlock)

    p_perms = sub.add_parser("permissions", help="Show the capability table per role")
    p_perms.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=None,
        help="Show a single role (default: all)",
    )
    p_perms.set_defaults(func=cmd_permissions)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    store = _open_store()
    try:
        return args.func(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
