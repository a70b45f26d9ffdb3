#!/usr/bin/env python3
"""Create a login account in the credential table.

Flow:
1) Create the users table if missing
2) Insert the account with a bcrypt password hash
"""

from __future__ import annotations

import argparse
import getpass
import sys

from app.db.init_db import create_user, init_db
from app.db.session import SessionLocal, engine


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a login account.")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument(
        "--password",
        help="Account password (prompted when omitted)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    password = args.password or getpass.getpass("Password: ")
    if not password:
        raise ValueError("Password must not be empty")

    init_db(engine)
    db = SessionLocal()
    try:
        user = create_user(db, args.username, args.email, password)
    finally:
        db.close()

    print(f"Created user id={user.id} username={user.username}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise SystemExit(1)
