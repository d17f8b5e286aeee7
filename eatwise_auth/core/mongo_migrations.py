"""Versioned MongoDB index migrations for the accounts collection."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pymongo
from pymongo.errors import PyMongoError

from eatwise_auth.core.config import MongoConfig
from eatwise_auth.core.logging import CORRELATION_ID_CTX

LOGGER = logging.getLogger(__name__)

MigrationFn = Callable[[Any], None]


def _migration_20260301_01_account_identity_indexes(db: Any) -> None:
    db["auth_accounts"].create_index("user_id", unique=True)
    db["auth_accounts"].create_index("email", unique=True)


def _migration_20260301_02_one_time_credential_indexes(db: Any) -> None:
    # Sparse: most accounts hold neither a pending code nor a reset token.
    db["auth_accounts"].create_index(
        [("verification_code", 1), ("verification_code_expires_at", 1)],
        sparse=True,
        name="idx_auth_accounts_verification_code",
    )
    db["auth_accounts"].create_index(
        [("reset_token", 1), ("reset_token_expires_at", 1)],
        sparse=True,
        name="idx_auth_accounts_reset_token",
    )


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("20260301_01_account_identity_indexes", _migration_20260301_01_account_identity_indexes),
    (
        "20260301_02_one_time_credential_indexes",
        _migration_20260301_02_one_time_credential_indexes,
    ),
]


def run_migrations(db: Any) -> list[str]:
    """Apply pending migrations to ``db``; return the ids applied now."""
    migration_collection = db["schema_migrations"]
    migration_collection.create_index("migration_id", unique=True)

    applied: list[str] = []
    for migration_id, migration_fn in MIGRATIONS:
        if migration_collection.find_one({"migration_id": migration_id}):
            continue
        migration_fn(db)
        migration_collection.insert_one(
            {
                "migration_id": migration_id,
                "applied_at": datetime.now(timezone.utc),
                "correlation_id": CORRELATION_ID_CTX.get(),
            }
        )
        applied.append(migration_id)
    return applied


def apply_mongo_migrations(config: MongoConfig) -> None:
    """Apply MongoDB migrations if a Mongo URI is configured."""
    if not config.uri:
        return

    client: Any = pymongo.MongoClient(config.uri, serverSelectionTimeoutMS=3000)
    try:
        client.admin.command("ping")
        applied = run_migrations(client[config.database])
        if applied:
            LOGGER.info("mongo_migrations_applied: %s", ", ".join(applied))
    except PyMongoError:
        LOGGER.warning("mongo_migrations_skipped", exc_info=True)
    finally:
        client.close()
