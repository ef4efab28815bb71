#!/usr/bin/env python3
"""CLI tool for creating a back-office admin account.

Reads DB_URL and the other settings from the environment / .env, the same
way the server does.
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys

# Allow running from repo root: add backend/ to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from sqlmodel import Session

import cisa.models  # noqa: F401
from cisa.db import create_db_and_tables, engine
from cisa.services.admins import AdminExistsError, create_admin


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a CISA admin account.")
    parser.add_argument("username", help="Login name for the new admin")
    parser.add_argument("--name", default="System Administrator", help="Display name")
    parser.add_argument("--email", default=None, help="Contact email (must be unique)")
    parser.add_argument("--role", default="admin", help="Role tag carried in the session token")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("Error: passwords do not match", file=sys.stderr)
        return 1

    create_db_and_tables()
    with Session(engine) as session:
        try:
            admin = create_admin(
                session,
                args.username,
                password,
                name=args.name,
                email=args.email,
                role=args.role,
            )
        except (AdminExistsError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(f"Admin created: {admin.username} (id {admin.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
