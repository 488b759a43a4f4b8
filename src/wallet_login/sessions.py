"""Session token issuance."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class Session:
    """An authenticated session."""

    token: str
    address: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class SessionIssuer:
    """Issues and tracks opaque session tokens."""

    DEFAULT_TTL = 86400  # 24 hours
    CLEANUP_INTERVAL = 300  # 5 minutes

    def __init__(self, ttl_seconds: int = DEFAULT_TTL):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._last_cleanup = datetime.now(timezone.utc)

    def issue(self, address: str) -> Session:
        """Create a session token for an authenticated address."""
        now = datetime.now(timezone.utc)
        if now - self._last_cleanup >= timedelta(seconds=self.CLEANUP_INTERVAL):
            self.cleanup_expired()
        session = Session(
            token=secrets.token_hex(32),
            address=address,
            issued_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._sessions[session.token] = session
        return session

    def validate(self, token: str) -> Session | None:
        """Return the session for token, or None if unknown or expired."""
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired():
                del self._sessions[token]
                return None
            return session

    def invalidate(self, token: str) -> None:
        """Invalidate a session token (logout)."""
        with self._lock:
            self._sessions.pop(token, None)

    def cleanup_expired(self) -> int:
        """Remove expired sessions and return how many were dropped."""
        now = datetime.now(timezone.utc)
        with self._lock:
            self._last_cleanup = now
            expired = [t for t, s in self._sessions.items() if s.is_expired(now)]
            for token in expired:
                del self._sessions[token]
        return len(expired)
