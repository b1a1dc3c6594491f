#!/usr/bin/env python3
"""
Account service admin CLI.

Registration over HTTP only ever creates default-role users; this CLI is how
the first admin comes to exist.

Usage:
  python main.py create-user alice
  python main.py create-user alice --admin
  python main.py promote alice
  python main.py promote alice --role user
  python main.py purge-sessions

Passwords are prompted for (twice) and never accepted on the command line.

Environment variables:
  SECRET_KEY, PASSWORD_SALT, PASSWORD_HASH_ROUNDS -- see core/config.py. The
  CLI must run with the same PASSWORD_SALT and PASSWORD_HASH_ROUNDS as the
  server or created users will not be able to log in.
"""

import argparse
import getpass
import sys

from auth.models import UserRole
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings
from core.errors import AccountError
from sessions.coordinator import SessionCoordinator
from sessions.store import PRIMARY_TABLE, TOKEN_TABLE, SessionStore


def _build_service() -> AuthService:
    ttl = get_settings().session_ttl_seconds
    sessions = SessionCoordinator(
        SessionStore(table=PRIMARY_TABLE, ttl=ttl),
        SessionStore(table=TOKEN_TABLE, ttl=ttl),
        ttl_seconds=ttl,
    )
    return AuthService(UserStore(), sessions)


def _create_user(service: AuthService, args: argparse.Namespace) -> int:
    password = getpass.getpass("  Password: ")
    confirm = getpass.getpass("  Confirm password: ")
    user_id = service.register(args.account, password, confirm)
    print(f"  Created '{args.account}' (id={user_id}).")
    if args.admin:
        service.set_role(args.account, UserRole.ADMIN.value)
        print("  Role set to admin.")
    return 0


def _promote(service: AuthService, args: argparse.Namespace) -> int:
    user = service.set_role(args.account, args.role)
    print(f"  '{user.account}' (id={user.id}) now has role '{user.role}'.")
    return 0


def _purge_sessions(service: AuthService, args: argparse.Namespace) -> int:
    removed = service.sessions.purge_expired()
    print(f"  Removed {removed} expired session entr{'y' if removed == 1 else 'ies'}.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Account service administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_create = sub.add_parser("create-user", help="Register a new account")
    p_create.add_argument("account", help="Account name (at least 2 characters)")
    p_create.add_argument("--admin", action="store_true", help="Grant the admin role after creation")
    p_create.set_defaults(handler=_create_user)

    p_promote = sub.add_parser("promote", help="Change an account's role")
    p_promote.add_argument("account", help="Existing account name")
    p_promote.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.ADMIN.value,
        help="Role to assign (default: admin)",
    )
    p_promote.set_defaults(handler=_promote)

    p_purge = sub.add_parser("purge-sessions", help="Delete expired entries from both session stores")
    p_purge.set_defaults(handler=_purge_sessions)

    args = parser.parse_args(argv)

    service = _build_service()
    try:
        return args.handler(service, args)
    except AccountError as exc:
        print(f"  [!] {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        service.sessions.close()
        service.store.close()


if __name__ == "__main__":
    sys.exit(main())
