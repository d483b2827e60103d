"""Credential verification behind a pluggable authenticator interface."""

import json
import logging
from pathlib import Path
from typing import Mapping, Protocol

from werkzeug.security import check_password_hash, generate_password_hash

from filebox.domain.correlation_id import CorrelationLoggerAdapter
from filebox.storage.errors import ContainmentError
from filebox.storage.namespace import validate_identity

AUTH_LOGGER = CorrelationLoggerAdapter(logging.getLogger("filebox.auth"), {})

# Compared against when the username is unknown so both paths cost one hash.
_DUMMY_HASH = generate_password_hash("filebox-dummy-password")


class AuthError(Exception):
    """Raised when credentials are missing or do not match."""

    public_message = "Invalid credentials"


class Authenticator(Protocol):
    """Anything that can turn credentials into a user identity."""

    def authenticate(self, username: str, password: str) -> str:
        """Return the user identity or raise AuthError."""


def hash_password(password: str) -> str:
    """Return a salted hash suitable for the users file."""
    return generate_password_hash(password)


class UsersFileAuthenticator:
    """Authenticates against a ``{"username": "<password hash>"}`` mapping."""

    def __init__(self, password_hashes: Mapping[str, str]) -> None:
        accepted = {}
        for username, password_hash in password_hashes.items():
            try:
                validate_identity(username)
            except ContainmentError:
                AUTH_LOGGER.warning(
                    "Skipping unusable username in users file",
                    extra={"event": "users_file_invalid_entry"},
                )
                continue
            accepted[username] = password_hash
        self._password_hashes = accepted

    @classmethod
    def from_file(cls, users_file) -> "UsersFileAuthenticator":
        """Load the users file; a missing file yields an authenticator with no users."""
        path = Path(users_file)
        if not path.exists():
            AUTH_LOGGER.warning(
                "Users file not found; no logins will succeed",
                extra={"event": "users_file_missing", "users_file": path.as_posix()},
            )
            return cls({})
        with open(path, "r", encoding="utf-8") as file_handle:
            data = json.load(file_handle)
        if not isinstance(data, dict):
            raise ValueError("Users file must contain a JSON object")
        AUTH_LOGGER.info(
            "Users file loaded",
            extra={"event": "users_file_loaded", "entries": len(data)},
        )
        return cls({str(name): str(value) for name, value in data.items()})

    def authenticate(self, username: str, password: str) -> str:
        """Return ``username`` when the password matches its stored hash."""
        if not username or not password:
            raise AuthError("missing credentials")
        stored = self._password_hashes.get(username)
        if stored is None:
            check_password_hash(_DUMMY_HASH, password)
            raise AuthError("unknown user")
        if not check_password_hash(stored, password):
            raise AuthError("credential mismatch")
        return username
