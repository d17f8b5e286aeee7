"""Repository for account persistence."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterator

from pydantic import ValidationError as ModelValidationError
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from eatwise_auth.auth.models import Account
from eatwise_auth.core.config import MongoConfig

LOGGER = logging.getLogger(__name__)

ACCOUNTS_COLLECTION = "auth_accounts"


class AccountStoreError(RuntimeError):
    """Storage backend failed to read or write accounts."""


class DuplicateAccountError(AccountStoreError):
    """Insert rejected because the email is already registered."""


@contextmanager
def _mongo_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError as exc:
        raise AccountStoreError(f"MongoDB {operation} failed: {exc}") from exc


class AccountRepository:
    """Account repository with MongoDB primary and file-store fallback."""

    def __init__(self, config: MongoConfig, app_root: Path) -> None:
        """Initialize repository storage backends."""
        self._fallback_dir = (app_root / config.fallback_dir).resolve()
        self._accounts_file = self._fallback_dir / "accounts.json"
        self._file_lock = Lock()
        self._client: MongoClient | None = None
        self._accounts: Collection | None = None

        if config.uri:
            try:
                client: MongoClient = MongoClient(
                    config.uri, serverSelectionTimeoutMS=3000, tz_aware=True
                )
                client.admin.command("ping")
                accounts = client[config.database][ACCOUNTS_COLLECTION]
                accounts.create_index("user_id", unique=True)
                accounts.create_index("email", unique=True)
                self._client = client
                self._accounts = accounts
            except PyMongoError:
                LOGGER.warning("mongo_unavailable_using_file_store", exc_info=True)

        if self._accounts is None:
            self._fallback_dir.mkdir(parents=True, exist_ok=True)

    @property
    def uses_mongo(self) -> bool:
        return self._accounts is not None

    def close(self) -> None:
        """Release the Mongo client, if any."""
        if self._client is not None:
            self._client.close()

    def _read_rows(self) -> list[dict[str, Any]]:
        """Read account rows from the JSON file; a missing file is empty."""
        if not self._accounts_file.exists():
            return []
        try:
            payload = json.loads(self._accounts_file.read_text(encoding="utf-8"))
        except OSError as exc:
            raise AccountStoreError(f"Cannot read {self._accounts_file}") from exc
        except ValueError as exc:
            LOGGER.error("account_file_unreadable")
            raise AccountStoreError(f"{self._accounts_file} is not valid JSON") from exc
        if not isinstance(payload, list):
            LOGGER.error("account_file_unreadable")
            raise AccountStoreError(f"{self._accounts_file} does not hold an account list")
        return payload

    def _write_rows(self, rows: list[dict[str, Any]]) -> None:
        """Persist account rows through a temp file swapped into place."""
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=str(self._fallback_dir),
                prefix=".accounts-",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as handle:
                temp_path = Path(handle.name)
                json.dump(rows, handle, ensure_ascii=False, indent=2)
            os.replace(temp_path, self._accounts_file)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise AccountStoreError(f"Cannot write {self._accounts_file}") from exc

    def _load_accounts(self) -> list[Account]:
        accounts: list[Account] = []
        for row in self._read_rows():
            try:
                accounts.append(Account.model_validate(row))
            except ModelValidationError:
                LOGGER.warning("account_row_skipped", extra={"user_id": row.get("user_id")})
        return accounts

    @staticmethod
    def _find_one(accounts: Collection, query: dict[str, Any]) -> Account | None:
        with _mongo_errors("find"):
            doc = accounts.find_one(query, {"_id": 0})
        return Account.model_validate(doc) if doc else None

    def _consume(
        self,
        query: dict[str, Any],
        matches: Callable[[Account], bool],
        changes: dict[str, Any],
    ) -> Account | None:
        """Apply ``changes`` to the first account matching, in one step.

        A second caller racing on the same credential finds nothing.
        """
        accounts = self._accounts
        if accounts is not None:
            with _mongo_errors("update"):
                doc = accounts.find_one_and_update(
                    query,
                    {"$set": changes},
                    projection={"_id": 0},
                    return_document=ReturnDocument.AFTER,
                )
            return Account.model_validate(doc) if doc else None

        with self._file_lock:
            rows = self._read_rows()
            for index, row in enumerate(rows):
                try:
                    account = Account.model_validate(row)
                except ModelValidationError:
                    continue
                if not matches(account):
                    continue
                updated = account.model_copy(update=changes)
                rows[index] = updated.model_dump(mode="json")
                self._write_rows(rows)
                return updated
        return None

    def get_by_email(self, email: str) -> Account | None:
        """Get account by exact email."""
        accounts = self._accounts
        if accounts is not None:
            return self._find_one(accounts, {"email": email})

        with self._file_lock:
            return next((a for a in self._load_accounts() if a.email == email), None)

    def get_by_id(self, user_id: str) -> Account | None:
        """Get account by user id."""
        accounts = self._accounts
        if accounts is not None:
            return self._find_one(accounts, {"user_id": user_id})

        with self._file_lock:
            return next((a for a in self._load_accounts() if a.user_id == user_id), None)

    def consume_verification_code(
        self,
        code: str,
        now: datetime,
        changes: dict[str, Any],
        email: str | None = None,
    ) -> Account | None:
        """Update the account holding ``code`` live after ``now``.

        ``changes`` must clear the code so it cannot be used twice.
        """
        query: dict[str, Any] = {
            "verification_code": code,
            "verification_code_expires_at": {"$gt": now},
        }
        if email is not None:
            query["email"] = email

        def matches(account: Account) -> bool:
            expires_at = account.verification_code_expires_at
            return (
                account.verification_code == code
                and (email is None or account.email == email)
                and expires_at is not None
                and expires_at > now
            )

        return self._consume(query, matches, changes)

    def consume_reset_token(
        self, token: str, now: datetime, changes: dict[str, Any]
    ) -> Account | None:
        """Update the account holding reset ``token`` live after ``now``."""

        def matches(account: Account) -> bool:
            expires_at = account.reset_token_expires_at
            return account.reset_token == token and expires_at is not None and expires_at > now

        return self._consume(
            {"reset_token": token, "reset_token_expires_at": {"$gt": now}},
            matches,
            changes,
        )

    def create(self, account: Account) -> None:
        """Insert a new account; raises ``DuplicateAccountError`` on email clash."""
        accounts = self._accounts
        if accounts is not None:
            try:
                with _mongo_errors("insert"):
                    accounts.insert_one(account.model_dump())
            except DuplicateKeyError as exc:
                raise DuplicateAccountError(account.email) from exc
            return

        with self._file_lock:
            rows = self._read_rows()
            if any(str(row.get("email", "")) == account.email for row in rows):
                raise DuplicateAccountError(account.email)
            rows.append(account.model_dump(mode="json"))
            self._write_rows(rows)

    def save(self, account: Account) -> None:
        """Create or replace account by user id (last write wins)."""
        accounts = self._accounts
        if accounts is not None:
            with _mongo_errors("update"):
                accounts.replace_one(
                    {"user_id": account.user_id}, account.model_dump(), upsert=True
                )
            return

        with self._file_lock:
            rows = [
                row
                for row in self._read_rows()
                if str(row.get("user_id", "")) != account.user_id
            ]
            rows.append(account.model_dump(mode="json"))
            self._write_rows(rows)
