"""
Admin authentication.

A single shared admin password gates the mutating endpoints. A successful
login stores a random session token in the cache store; the token travels
back in an HTTP-only cookie. When no password is configured every caller is
treated as an admin.
"""

from __future__ import annotations

import hmac
import secrets

from .cache import CacheStore

ADMIN_COOKIE_NAME = "simulive_admin"
COOKIE_MAX_AGE = 60 * 60 * 24  # 24 hours
SESSION_TOKEN_BYTES = 32


class AdminAuthenticator:
    """Password check plus cache-backed session tokens."""

    def __init__(self, password: str | None, store: CacheStore) -> None:
        self._password = password or ""
        self._store = store

    @property
    def required(self) -> bool:
        return bool(self._password)

    def verify_password(self, candidate: str) -> bool:
        if not self.required:
            return True
        return hmac.compare_digest(candidate.encode("utf-8"), self._password.encode("utf-8"))

    def create_session(self) -> str | None:
        token = secrets.token_hex(SESSION_TOKEN_BYTES)
        if not self._store.set(self._session_key(token), True, COOKIE_MAX_AGE):
            return None
        return token

    def validate_session(self, token: str | None) -> bool:
        if not token or len(token) != SESSION_TOKEN_BYTES * 2:
            return False
        return bool(self._store.get(self._session_key(token)))

    def delete_session(self, token: str | None) -> None:
        if token:
            self._store.delete(self._session_key(token))

    def is_authorized(self, token: str | None) -> bool:
        """The boolean gate consumed by administrative endpoints."""
        if not self.required:
            return True
        return self.validate_session(token)

    @staticmethod
    def _session_key(token: str) -> str:
        return f"session:{token}"
