#!/usr/bin/env python3
"""
Create an admin account, or promote an existing user to admin.

Usage:
  python scripts/create_admin.py --username alice --email alice@example.com [--password secret123]
  python scripts/create_admin.py --username alice --promote
"""
from __future__ import annotations

import argparse
import getpass
import sys

from linklounge.core.errors import LoungeError
from linklounge.db.create_tables import create_all
from linklounge.db.models import ROLE_ADMIN
from linklounge.repositories.sql_repository import SQLRepository
from linklounge.services.user_service import UserService


def main() -> None:
    ap = argparse.ArgumentParser(description="Create or promote a LinkLounge admin")
    ap.add_argument("--username", required=True, help="Username (3-30 chars [a-z0-9._-])")
    ap.add_argument("--email", help="E-mail for a new account")
    ap.add_argument("--password", help="Password for a new account (prompted when omitted)")
    ap.add_argument("--promote", action="store_true", help="Promote an existing user instead of creating one")
    args = ap.parse_args()

    create_all()
    repo = SQLRepository()
    if args.promote:
        user = repo.get_user_by_username(args.username)
        if not user:
            raise SystemExit(f"User '{args.username}' does not exist")
        repo.update_user(user.id, {"role": ROLE_ADMIN})
        print(f"OK: {user.username} is now an admin")
        return

    if not args.email:
        raise SystemExit("--email is required when creating an account")
    password = args.password or getpass.getpass("Password: ")
    user = UserService(repository=repo).register(args.username, args.email, password)
    repo.update_user(user.id, {"role": ROLE_ADMIN})
    print("OK: admin created")
    print(f"  ID: {user.id}")
    print(f"  Username: {user.username}")
    print(f"  Email: {user.email}")


if __name__ == "__main__":
    try:
        main()
    except LoungeError as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc.message}\n")
        raise SystemExit(1)
