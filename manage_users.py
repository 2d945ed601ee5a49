#!/usr/bin/env python3
"""
Administrative user maintenance against the configured credential store.

Usage:
    python manage_users.py list
    python manage_users.py delete user@example.com

The backend and its location come from the usual settings (``STORAGE_BACKEND``,
``DATABASE_URL``, ``USERS_FILE``), so the script sees the same users as the
running service.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from config.settings import Settings, config
from database.backends import build_stores
from utils.schemas import UserSummary


async def list_users(settings: Settings) -> List[UserSummary]:
    store, _ = build_stores(settings)
    await store.initialise()
    try:
        return await store.list()
    finally:
        await store.close()


async def delete_user(settings: Settings, email: str) -> int:
    """Remove every account matching ``email`` (case-insensitive); returns the count."""
    store, _ = build_stores(settings)
    await store.initialise()
    try:
        return await store.delete_by_email(email)
    finally:
        await store.close()


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    settings = settings or config

    parser = argparse.ArgumentParser(description="Inspect or remove credential-service users")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="Print every user's email, role and creation time as JSON")
    delete_cmd = commands.add_parser("delete", help="Delete the account registered under an email")
    delete_cmd.add_argument("email")

    args = parser.parse_args(argv)

    if args.command == "list":
        users = asyncio.run(list_users(settings))
        print(json.dumps([u.model_dump(mode="json", by_alias=True) for u in users], indent=2))
        return 0

    removed = asyncio.run(delete_user(settings, args.email))
    print(f"Deleted {removed} row(s) for email {args.email}")
    return 0 if removed else 1


if __name__ == "__main__":
    sys.exit(main())
