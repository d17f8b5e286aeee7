from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pymongo import ReturnDocument

from eatwise_auth.auth import repository as repository_module
from eatwise_auth.auth.models import Account
from eatwise_auth.auth.repository import (
    AccountRepository,
    AccountStoreError,
    DuplicateAccountError,
)
from eatwise_auth.core.config import MongoConfig
from tests.fakes import START


def _repo(tmp_path: Path) -> AccountRepository:
    return AccountRepository(
        MongoConfig(uri="", database="eatwise_test", fallback_dir="runtime/auth_store"),
        tmp_path,
    )


def _account(user_id: str, email: str, **fields: object) -> Account:
    return Account(
        user_id=user_id,
        email=email,
        password_hash="hash",
        name="Ann",
        created_at=START,
        updated_at=START,
        **fields,  # type: ignore[arg-type]
    )


def test_account_repository_create_and_lookup_by_email_and_id(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.create(_account("u1", "Ann@Example.com"))

    by_email = repo.get_by_email("Ann@Example.com")
    by_id = repo.get_by_id("u1")

    assert not repo.uses_mongo
    assert by_email is not None and by_email.user_id == "u1"
    assert by_id == by_email
    assert by_id.created_at == START
    assert repo.get_by_email("ann@example.com") is None


def test_account_repository_create_rejects_duplicate_email(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.create(_account("u1", "a@x.com"))

    with pytest.raises(DuplicateAccountError):
        repo.create(_account("u2", "a@x.com"))

    assert repo.get_by_id("u2") is None


def test_account_repository_save_replaces_by_user_id(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.create(_account("u1", "a@x.com"))

    repo.save(_account("u1", "a@x.com", is_verified=True))

    rows = json.loads(
        (tmp_path / "runtime" / "auth_store" / "accounts.json").read_text(encoding="utf-8")
    )
    assert len(rows) == 1
    assert "password_hash" in rows[0]
    assert repo.get_by_id("u1").is_verified is True  # type: ignore[union-attr]


def test_account_repository_consumes_only_live_verification_codes(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.create(
        _account(
            "u1",
            "a@x.com",
            verification_code="123456",
            verification_code_expires_at=START + timedelta(hours=1),
        )
    )
    verified = {
        "is_verified": True,
        "verification_code": None,
        "verification_code_expires_at": None,
    }

    assert repo.consume_verification_code("123456", START, verified, email="b@x.com") is None
    assert repo.consume_verification_code("123456", START + timedelta(hours=1), verified) is None
    assert repo.consume_verification_code("654321", START, verified) is None

    consumed = repo.consume_verification_code("123456", START, verified, email="a@x.com")

    assert consumed is not None and consumed.is_verified is True
    assert repo.get_by_id("u1").verification_code is None  # type: ignore[union-attr]
    assert repo.consume_verification_code("123456", START, verified) is None


def test_account_repository_consumes_reset_token_exactly_once(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.create(
        _account(
            "u1",
            "a@x.com",
            reset_token="ab" * 20,
            reset_token_expires_at=START + timedelta(minutes=30),
        )
    )
    cleared = {"password_hash": "new-hash", "reset_token": None, "reset_token_expires_at": None}

    assert repo.consume_reset_token("ab" * 20, START + timedelta(minutes=30), cleared) is None

    first = repo.consume_reset_token("ab" * 20, START, cleared)
    second = repo.consume_reset_token("ab" * 20, START, cleared)

    assert first is not None and first.password_hash == "new-hash"
    assert second is None
    assert repo.get_by_id("u1").reset_token is None  # type: ignore[union-attr]


def test_account_repository_refuses_to_overwrite_corrupted_accounts_file(
    tmp_path: Path,
) -> None:
    repo = _repo(tmp_path)
    repo.create(_account("u1", "a@x.com"))
    accounts_file = tmp_path / "runtime" / "auth_store" / "accounts.json"
    intact = accounts_file.read_text(encoding="utf-8")
    accounts_file.write_text(intact[:-5], encoding="utf-8")

    with pytest.raises(AccountStoreError):
        repo.create(_account("u2", "b@x.com"))
    with pytest.raises(AccountStoreError):
        repo.save(_account("u1", "a@x.com", is_verified=True))
    with pytest.raises(AccountStoreError):
        repo.get_by_email("a@x.com")

    assert accounts_file.read_text(encoding="utf-8") == intact[:-5]


def test_account_repository_rejects_non_list_accounts_file(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    accounts_file = tmp_path / "runtime" / "auth_store" / "accounts.json"
    accounts_file.write_text('{"u1": {}}', encoding="utf-8")

    with pytest.raises(AccountStoreError):
        repo.create(_account("u2", "b@x.com"))


def test_account_repository_writes_leave_no_temp_files(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.create(_account("u1", "a@x.com"))
    repo.save(_account("u1", "a@x.com", is_verified=True))

    store_dir = tmp_path / "runtime" / "auth_store"
    assert [path.name for path in store_dir.iterdir()] == ["accounts.json"]


def test_account_repository_mongo_consumes_with_one_conditional_update(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = MagicMock()
    collection = client.__getitem__.return_value.__getitem__.return_value
    collection.find_one_and_update.return_value = None
    monkeypatch.setattr(repository_module, "MongoClient", lambda *args, **kwargs: client)
    repo = AccountRepository(
        MongoConfig(uri="mongodb://db.test", database="eatwise_test", fallback_dir="unused"),
        tmp_path,
    )

    result = repo.consume_reset_token("tok", START, {"reset_token": None})

    assert repo.uses_mongo
    assert result is None
    args, kwargs = collection.find_one_and_update.call_args
    assert args[0] == {"reset_token": "tok", "reset_token_expires_at": {"$gt": START}}
    assert args[1] == {"$set": {"reset_token": None}}
    assert kwargs["return_document"] is ReturnDocument.AFTER
    collection.replace_one.assert_not_called()


def test_account_model_rejects_half_set_credential_pairs() -> None:
    with pytest.raises(ValueError):
        _account("u1", "a@x.com", verification_code="123456")
    with pytest.raises(ValueError):
        _account("u1", "a@x.com", reset_token_expires_at=START)


def test_public_account_omits_secrets() -> None:
    account = _account(
        "u1",
        "a@x.com",
        verification_code="123456",
        verification_code_expires_at=START,
    )

    public = account.to_public().model_dump(by_alias=True)

    assert public["id"] == "u1"
    assert public["isVerified"] is False
    assert "passwordHash" not in public and "password_hash" not in public
    assert "verificationCode" not in public
