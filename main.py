#!/usr/bin/env python3
"""
OrgAdmin -- management commands.

Usage:
  python main.py init-db
  python main.py create-admin
  python main.py create-admin --username root --email root@example.com
  python main.py regenerate-admin-password

Environment variables (see core/config.py):
  DATABASE_URL     SQLAlchemy URL of the database (default: sqlite file beside the code)
  SECRET_KEY       Required unless DEBUG=true
  ADMIN_USERNAME   Default username for create-admin / regenerate-admin-password
  ADMIN_EMAIL      Default email for create-admin
"""

import argparse
import getpass
import logging
import secrets
import sys
from typing import Optional

from auth.models import User
from auth.passwords import hash_password, password_too_long
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("orgadmin.cli")

_MIN_PASSWORD_LENGTH = 8


def _prompt_password() -> Optional[str]:
    """Ask twice for a password without echoing it. None if the entries differ or the length is out of range."""
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    if len(first) < _MIN_PASSWORD_LENGTH or password_too_long(first):
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters and at most 72 bytes.")
        return None
    return first


def init_db(store: UserStore) -> int:
    """Create the schema (done on connect) and seed the built-in roles."""
    admin_role_id = store.ensure_default_roles()
    print(f"  Database ready. Admin role id={admin_role_id}.")
    return 0


def create_admin(store: UserStore, username: str, email: str, rounds: int) -> int:
    """Create an account holding the Admin role. Fails if the username or email is taken."""
    admin_role_id = store.ensure_default_roles()
    if store.username_taken(username):
        print(f"  [!] Username '{username}' already exists.")
        return 1
    if store.email_taken(email):
        print(f"  [!] Email '{email}' already exists.")
        return 1

    password = _prompt_password()
    if password is None:
        return 1
    user_id = store.create_user(
        User(
            username=username,
            email=email,
            hashed_password=hash_password(password, rounds=rounds),
            role_id=admin_role_id,
        )
    )
    logger.info("Admin account %s created (id=%s)", username, user_id)
    print(f"  Admin '{username}' created.")
    return 0


def regenerate_admin_password(store: UserStore, username: str, rounds: int) -> int:
    """Replace the admin's password with a random one and print it once."""
    password = secrets.token_urlsafe(18)
    if not store.set_password_by_username(username, hash_password(password, rounds=rounds)):
        print(f"  [!] No user named '{username}'.")
        return 1
    logger.info("Password regenerated for %s", username)
    print(f"  New password for '{username}': {password}")
    print("  It will not be shown again.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="orgadmin",
        description="OrgAdmin management commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init-db
  python main.py create-admin --username admin --email admin@example.com
  python main.py regenerate-admin-password --username admin
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("init-db", help="Create the database schema and built-in roles")

    p_admin = sub.add_parser("create-admin", help="Create an Admin account (prompts for the password)")
    p_admin.add_argument("--username", default=settings.admin_username, help="Account username")
    p_admin.add_argument("--email", default=settings.admin_email, help="Account email")

    p_regen = sub.add_parser("regenerate-admin-password", help="Set and print a new random admin password")
    p_regen.add_argument("--username", default=settings.admin_username, help="Account username")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    store = UserStore(settings.database_url)
    try:
        if args.command == "init-db":
            return init_db(store)
        if args.command == "create-admin":
            return create_admin(store, args.username, args.email, settings.bcrypt_rounds)
        return regenerate_admin_password(store, args.username, settings.bcrypt_rounds)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
