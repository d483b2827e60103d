"""In-memory session tokens issued after a successful login."""

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(slots=True)
class Session:
    """A live login session."""

    user_id: str
    expires_at_ns: int


class SessionStore:
    """Thread-safe token to user mapping with a fixed time-to-live."""

    def __init__(
        self,
        ttl_seconds: int,
        time_provider: Optional[Callable[[], int]] = None,
    ) -> None:
        self._ttl_ns = max(1, ttl_seconds) * 1_000_000_000
        self._now_provider = time_provider or time.monotonic_ns
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def _now(self) -> int:
        return self._now_provider()

    def create(self, user_id: str) -> str:
        """Start a session for ``user_id`` and return its token."""
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._purge_expired()
            self._sessions[token] = Session(user_id, self._now() + self._ttl_ns)
        return token

    def lookup(self, token: Optional[str]) -> Optional[str]:
        """Return the user behind ``token`` or None when absent or expired."""
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.expires_at_ns <= self._now():
                del self._sessions[token]
                return None
            return session.user_id

    def revoke(self, token: Optional[str]) -> None:
        """Forget ``token``; unknown tokens are ignored."""
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def active_count(self) -> int:
        """Return the number of unexpired sessions."""
        with self._lock:
            self._purge_expired()
            return len(self._sessions)

    def _purge_expired(self) -> None:
        now = self._now()
        expired = [
            token
            for token, session in self._sessions.items()
            if session.expires_at_ns <= now
        ]
        for token in expired:
            del self._sessions[token]
