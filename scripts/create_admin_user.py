"""
Create or reset an admin account.

Admin users are never created over HTTP. Run this once per deployment:

    python scripts/create_admin_user.py admin
"""

import argparse
import getpass
import sys

from database import db, ensure_indexes, now
from auth import MIN_PASSWORD_LENGTH, hash_password
from schemas import User


def create_admin_user(database, username: str, password: str) -> str:
    user = User(username=username, password=hash_password(password), isAdmin=True)
    stamp = now()
    result = database["users"].update_one(
        {"username": user.username},
        {"$set": {**user.model_dump(), "updatedAt": stamp}, "$setOnInsert": {"createdAt": stamp}},
        upsert=True,
    )
    return "created" if result.upserted_id is not None else "updated"


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or reset a portfolio admin user")
    parser.add_argument("username")
    args = parser.parse_args()

    if db is None:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1
    password = getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", file=sys.stderr)
        return 1
    if password != getpass.getpass("Repeat password: "):
        print("Passwords do not match", file=sys.stderr)
        return 1

    ensure_indexes(db)
    outcome = create_admin_user(db, args.username, password)
    print(f"Admin user '{args.username}' {outcome}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
