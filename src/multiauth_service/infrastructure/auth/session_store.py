"""Session Data Storage

Purpose: Data attached to a user session, keyed by the session cookie

Storage Schema:
- multiauth:session:{session_id} -> hash of "{namespace}|{key}" -> {entry_json}

Each entry records its own expiry; entries stored with
DATA_TIMEOUT_SESSION_END live as long as the session hash, whose TTL is
refreshed on every write.
"""

import json
import logging
import secrets
import time
from typing import Optional

from redis.asyncio import Redis

from multiauth_service.core.auth.stores import (
    DATA_TIMEOUT_SESSION_END,
    SessionStore,
    SessionTimeout,
)

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    """Generate an unguessable session id"""
    return secrets.token_urlsafe(32)


def encode_entry(value: str, timeout: SessionTimeout) -> str:
    """Serialize a session value together with its expiry"""
    if timeout == DATA_TIMEOUT_SESSION_END:
        expires_at = None
    elif isinstance(timeout, int) and timeout > 0:
        expires_at = time.time() + timeout
    else:
        raise ValueError(f"Invalid session data timeout: {timeout!r}")
    return json.dumps({"value": value, "expires_at": expires_at})


def decode_entry(raw: Optional[str]) -> Optional[str]:
    """Return the stored value, or None if absent or expired"""
    if raw is None:
        return None
    entry = json.loads(raw)
    expires_at = entry.get("expires_at")
    if expires_at is not None and expires_at < time.time():
        return None
    return entry.get("value")


class RedisSessionStore(SessionStore):
    """Session data of one session, stored in a Redis hash"""

    def __init__(self, redis_client: Redis, session_id: str, duration_seconds: int):
        """Initialize session store

        Args:
            redis_client: Redis connection for session storage
            session_id: Identifier of the session (from the session cookie)
            duration_seconds: Session lifetime, refreshed on every write
        """
        self.redis = redis_client
        self.session_id = session_id
        self.duration_seconds = duration_seconds

        self.session_key = f"multiauth:session:{session_id}"

    async def set_data(
        self,
        namespace: str,
        key: str,
        value: str,
        timeout: SessionTimeout = DATA_TIMEOUT_SESSION_END,
    ) -> None:
        field = f"{namespace}|{key}"
        try:
            await self.redis.hset(self.session_key, field, encode_entry(value, timeout))
            await self.redis.expire(self.session_key, self.duration_seconds)
        except Exception as e:
            logger.error(f"Redis HSET failed for session {self.session_id[:8]}...: {e}")
            raise

        logger.debug(f"Session {self.session_id[:8]}...: set {field}")

    async def get_data(self, namespace: str, key: str) -> Optional[str]:
        field = f"{namespace}|{key}"
        try:
            raw = await self.redis.hget(self.session_key, field)
        except Exception as e:
            logger.error(f"Redis HGET failed for session {self.session_id[:8]}...: {e}")
            raise

        if isinstance(raw, bytes):
            raw = raw.decode()
        return decode_entry(raw)
