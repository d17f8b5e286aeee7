#!/usr/bin/env python3
"""One-shot account migration from JSON fallback storage to MongoDB."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

import pymongo
from dotenv import load_dotenv
from pydantic import ValidationError

from eatwise_auth.auth.models import Account
from eatwise_auth.auth.repository import ACCOUNTS_COLLECTION
from eatwise_auth.core.mongo_migrations import run_migrations

DEFAULT_ACCOUNTS_FILE = Path("runtime") / "auth_store" / "accounts.json"
DEFAULT_DB_NAME = "eatwise"
MAX_PREVIEW_ITEMS = 10


def _parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Check and migrate accounts from JSON to MongoDB."
    )
    parser.add_argument(
        "--accounts-file",
        type=Path,
        default=DEFAULT_ACCOUNTS_FILE,
        help="Path to fallback accounts.json file.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only print a consistency report; write nothing.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and print migration plan without writing into MongoDB.",
    )
    return parser.parse_args()


def load_source_accounts(accounts_file: Path) -> tuple[dict[str, Account], int, list[str]]:
    """Return accounts keyed by email, invalid row count and duplicate emails."""
    if not accounts_file.exists():
        return {}, 0, []
    payload = json.loads(accounts_file.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Expected list in {accounts_file}, got {type(payload).__name__}")

    accounts: dict[str, Account] = {}
    duplicates: set[str] = set()
    invalid_count = 0
    for row in payload:
        try:
            account = Account.model_validate(row)
        except ValidationError:
            invalid_count += 1
            continue
        if account.email in accounts:
            duplicates.add(account.email)
        accounts[account.email] = account
    return accounts, invalid_count, sorted(duplicates)


def _preview(items: list[str]) -> str:
    return ", ".join(items[:MAX_PREVIEW_ITEMS])


def _print_check_report(
    source: dict[str, Account],
    invalid_count: int,
    duplicates: list[str],
    target_emails: set[str],
) -> None:
    """Print source/target consistency report."""
    missing_in_target = sorted(set(source) - target_emails)
    extra_in_target = sorted(target_emails - set(source))

    print(f"Source valid accounts: {len(source)}")
    print(f"Source invalid rows skipped: {invalid_count}")
    print(f"Source duplicate emails: {len(duplicates)}")
    if duplicates:
        print(f"Duplicate preview: {_preview(duplicates)}")
    print(f"Target accounts total: {len(target_emails)}")
    print(f"Missing in target: {len(missing_in_target)}")
    if missing_in_target:
        print(f"Missing preview: {_preview(missing_in_target)}")
    print(f"Extra in target: {len(extra_in_target)}")
    if extra_in_target:
        print(f"Extra preview: {_preview(extra_in_target)}")


def main() -> int:
    """Execute check or migration flow."""
    load_dotenv()
    args = _parse_args()
    mongo_uri = os.getenv("MONGODB_URI", "").strip()
    mongo_db = os.getenv("MONGODB_DB", DEFAULT_DB_NAME).strip() or DEFAULT_DB_NAME
    if not mongo_uri:
        print("MONGODB_URI is empty. Set env var before running script.", file=sys.stderr)
        return 2

    source, invalid_count, duplicates = load_source_accounts(args.accounts_file)

    client: Any = pymongo.MongoClient(mongo_uri, serverSelectionTimeoutMS=5000)
    try:
        client.admin.command("ping")
        db = client[mongo_db]
        collection = db[ACCOUNTS_COLLECTION]
        target_emails = {
            str(row.get("email", "")) for row in collection.find({}, {"_id": 0, "email": 1})
        }

        if args.check:
            _print_check_report(source, invalid_count, duplicates, target_emails)
            return 0

        missing = set(source) - target_emails
        if args.dry_run:
            print(f"Would upsert {len(source)} accounts ({len(missing)} new).")
            return 0

        run_migrations(db)
        for account in source.values():
            collection.replace_one(
                {"email": account.email}, account.model_dump(), upsert=True
            )
        print(f"Upserted {len(source)} accounts ({len(missing)} new).")
        return 0
    finally:
        client.close()


if __name__ == "__main__":
    raise SystemExit(main())
