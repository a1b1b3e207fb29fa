import hashlib
import secrets
import time

from flask import current_app


class SessionManager:
    """Server-side sessions kept in a key-value store with per-key TTL.

    ``store`` only needs ``get(key)``, ``set(key, value, timeout=...)`` and
    ``delete(key)``: a Flask-Caching ``Cache`` or any cachelib backend.
    Each session is an independent entry, so concurrent requests for
    different tokens never touch each other's state.
    """

    def __init__(self, store, idle_timeout=1800, key_prefix="session:", clock=time.time):
        self.store = store
        self.idle_timeout = int(idle_timeout)
        self.key_prefix = key_prefix
        self.clock = clock

    def _key(self, token):
        # Only a digest of the token is kept in the store.
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return f"{self.key_prefix}{digest}"

    def create(self, user_id) -> str:
        token = secrets.token_urlsafe(32)
        now = self.clock()
        record = {"user_id": user_id, "created_at": now, "last_access": now}
        self.store.set(self._key(token), record, timeout=self.idle_timeout)
        return token

    def resolve(self, token):
        """Return the user id bound to ``token``, or None if absent or idle too long."""
        if not token:
            return None
        key = self._key(token)
        record = self.store.get(key)
        if not record:
            return None
        now = self.clock()
        if now - record.get("last_access", 0) > self.idle_timeout:
            self.store.delete(key)
            return None
        record = dict(record, last_access=now)
        self.store.set(key, record, timeout=self.idle_timeout)
        return record["user_id"]

    def destroy(self, token) -> None:
        if token:
            self.store.delete(self._key(token))


def get_session_manager() -> SessionManager:
    return current_app.extensions["session_manager"]
