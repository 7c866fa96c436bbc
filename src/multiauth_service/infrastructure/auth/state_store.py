"""Authentication State Storage

Purpose: Keep authentication contexts while the user is redirected

When an attempt has to leave the service (for example to let the user pick a
source), its context is saved here and the client only carries the opaque
state id. The attempt resumes in a later request, possibly served by another
worker, by loading the context back.

Storage Schema:
- multiauth:state:{stage}:{state_id} -> {context_json}

Keys expire after the configured state TTL; an attempt that is never resumed
simply disappears.
"""

import json
import logging
import secrets
from typing import Optional

from pydantic import ValidationError
from redis.asyncio import Redis

from multiauth_service.core.auth.errors import StateNotFound
from multiauth_service.core.auth.stores import StateStore
from multiauth_service.domain.models.context import AuthContext

logger = logging.getLogger(__name__)


def new_state_id() -> str:
    """Generate an unguessable state id"""
    return secrets.token_urlsafe(32)


def decode_context(state_id: str, raw: Optional[str]) -> AuthContext:
    """Rebuild a context from its stored JSON.

    Raises:
        StateNotFound: If nothing was stored or the data is unreadable
    """
    if raw is None:
        raise StateNotFound(state_id)
    try:
        return AuthContext.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.error(f"Corrupted authentication state {state_id[:8]}...: {e}")
        raise StateNotFound(state_id, reason="is corrupted") from e


class RedisStateStore(StateStore):
    """Redis-backed authentication state storage"""

    def __init__(self, redis_client: Redis, ttl_seconds: int = 900):
        """Initialize state store

        Args:
            redis_client: Redis connection for state storage
            ttl_seconds: Lifetime of a saved state
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

        # Redis key pattern
        self.state_key_pattern = "multiauth:state:{}:{}"

    async def save(self, context: AuthContext, stage: str) -> str:
        state_id = new_state_id()
        key = self.state_key_pattern.format(stage, state_id)

        try:
            await self.redis.setex(key, self.ttl_seconds, context.model_dump_json())
        except Exception as e:
            logger.error(f"Failed to save authentication state for {context.auth_id}: {e}")
            raise

        logger.debug(f"Saved authentication state {state_id[:8]}... (stage: {stage})")
        return state_id

    async def load(self, state_id: str, stage: str) -> AuthContext:
        key = self.state_key_pattern.format(stage, state_id)
        try:
            raw = await self.redis.get(key)
        except Exception as e:
            logger.error(f"Redis GET failed for state {state_id[:8]}...: {e}")
            raise
        return decode_context(state_id, self._decode(raw))

    async def consume(self, state_id: str, stage: str) -> AuthContext:
        key = self.state_key_pattern.format(stage, state_id)
        try:
            # GETDEL: only one request can take a given state
            raw = await self.redis.getdel(key)
        except Exception as e:
            logger.error(f"Redis GETDEL failed for state {state_id[:8]}...: {e}")
            raise

        if raw is None:
            logger.warning(f"Authentication state {state_id[:8]}... missing or already used")
        return decode_context(state_id, self._decode(raw))

    @staticmethod
    def _decode(raw) -> Optional[str]:
        if isinstance(raw, bytes):
            return raw.decode()
        return raw
