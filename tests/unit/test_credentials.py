"""Unit tests for the users-file authenticator."""

import json
import logging
from pathlib import Path

import pytest
from werkzeug.security import check_password_hash

from filebox.auth.credentials import (
    AuthError,
    UsersFileAuthenticator,
    hash_password,
)


@pytest.fixture
def authenticator() -> UsersFileAuthenticator:
    return UsersFileAuthenticator({"alice": hash_password("alice-secret")})


def test_hash_password_is_salted_and_verifiable() -> None:
    first = hash_password("s3cret")
    second = hash_password("s3cret")
    assert first != second
    assert check_password_hash(first, "s3cret")
    assert "s3cret" not in first


def test_authenticate_returns_user_identity(authenticator) -> None:
    assert authenticator.authenticate("alice", "alice-secret") == "alice"


@pytest.mark.parametrize(
    ("username", "password", "reason"),
    [
        ("alice", "wrong", "credential mismatch"),
        ("mallory", "alice-secret", "unknown user"),
        ("", "alice-secret", "missing credentials"),
        ("alice", "", "missing credentials"),
    ],
)
def test_authenticate_rejections_share_public_message(
    authenticator, username: str, password: str, reason: str
) -> None:
    with pytest.raises(AuthError) as excinfo:
        authenticator.authenticate(username, password)
    assert str(excinfo.value) == reason
    assert excinfo.value.public_message == "Invalid credentials"


def test_unusable_usernames_are_skipped(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="filebox.auth"):
        authenticator = UsersFileAuthenticator(
            {"../root": hash_password("x"), "bob": hash_password("bob-secret")}
        )
    assert authenticator.authenticate("bob", "bob-secret") == "bob"
    with pytest.raises(AuthError):
        authenticator.authenticate("../root", "x")
    assert any(
        getattr(record, "event", None) == "users_file_invalid_entry"
        for record in caplog.records
    )


def test_from_file_loads_hashes(tmp_path: Path) -> None:
    users_file = tmp_path / "users.json"
    users_file.write_text(
        json.dumps({"alice": hash_password("alice-secret")}), encoding="utf-8"
    )
    authenticator = UsersFileAuthenticator.from_file(users_file)
    assert authenticator.authenticate("alice", "alice-secret") == "alice"


def test_missing_users_file_rejects_everyone(tmp_path: Path, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="filebox.auth"):
        authenticator = UsersFileAuthenticator.from_file(tmp_path / "absent.json")
    with pytest.raises(AuthError):
        authenticator.authenticate("alice", "alice-secret")
    assert any(
        getattr(record, "event", None) == "users_file_missing"
        for record in caplog.records
    )


def test_users_file_must_be_an_object(tmp_path: Path) -> None:
    users_file = tmp_path / "users.json"
    users_file.write_text(json.dumps(["alice"]), encoding="utf-8")
    with pytest.raises(ValueError):
        UsersFileAuthenticator.from_file(users_file)


def test_malformed_users_file_raises(tmp_path: Path) -> None:
    users_file = tmp_path / "users.json"
    users_file.write_text("{not json", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        UsersFileAuthenticator.from_file(users_file)
