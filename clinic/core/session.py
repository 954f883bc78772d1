"""
Server-side session storage.

Session records live in Redis under ``session:<id>`` and expire on their own
after the configured max age. The browser only ever sees the signed id.
"""
import json
import logging
from typing import Optional

import redis
from starlette.responses import Response

from .config import settings
from .security import generate_session_id, sign_session_id

logger = logging.getLogger(__name__)


class RedisSessionStore:
    def __init__(self, client: redis.Redis, ttl_seconds: int, prefix: str = "session:"):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> "RedisSessionStore":
        return cls(redis.from_url(url, decode_responses=True), ttl_seconds)

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    def create(self, data: dict) -> str:
        """Persist a new session record and return its id."""
        session_id = generate_session_id()
        self.client.setex(self._key(session_id), self.ttl_seconds, json.dumps(data))
        return session_id

    def get(self, session_id: str) -> Optional[dict]:
        raw = self.client.get(self._key(session_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable session record {session_id}")
            return None

    def destroy(self, session_id: str) -> bool:
        """Delete a session record. Returns False if it did not exist."""
        return bool(self.client.delete(self._key(session_id)))

    def close(self):
        self.client.close()


def set_session_cookie(response: Response, session_id: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=sign_session_id(session_id),
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
