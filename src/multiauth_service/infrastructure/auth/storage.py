"""Storage backend selection.

Selects where authentication state and session data live, based on the
STORE_BACKEND setting:
- redis: shared Redis (default, required for multiple workers)
- memory: process memory (development, tests)
"""

import logging
from typing import Callable, Optional

from multiauth_service.config.settings import Settings, get_settings
from multiauth_service.core.auth.stores import SessionStore, StateStore
from multiauth_service.infrastructure.redis.client import (
    RedisClient,
    close_redis_client,
    get_redis_client,
)

from .memory_store import MemorySessionBackend, MemoryStateStore
from .session_store import RedisSessionStore
from .state_store import RedisStateStore

logger = logging.getLogger(__name__)


class Storage:
    """State store and session factory of the running service"""

    def __init__(
        self,
        backend: str,
        state_store: StateStore,
        session_factory: Callable[[str], SessionStore],
        redis_client: Optional[RedisClient] = None,
    ):
        self.backend = backend
        self.state_store = state_store
        self._session_factory = session_factory
        self.redis_client = redis_client

    def session(self, session_id: str) -> SessionStore:
        """Session store bound to one session id"""
        return self._session_factory(session_id)

    async def health_check(self) -> bool:
        """Check that the backing store is reachable

        Returns:
            True if the store can be used, False otherwise
        """
        if self.redis_client is None:
            return True
        return await self.redis_client.health_check()


# Global storage instance (initialized at application startup)
_storage: Optional[Storage] = None


async def initialize_storage(settings: Optional[Settings] = None) -> Storage:
    """Create the global storage for the configured backend.

    Args:
        settings: Application settings (defaults to get_settings())

    Returns:
        Initialized Storage

    Raises:
        ValueError: If STORE_BACKEND is invalid
    """
    global _storage

    settings = settings or get_settings()
    mode = settings.store_backend.lower()
    logger.info(f"Initializing storage backend: {mode}")

    if mode == "redis":
        redis_client = await get_redis_client()
        client = redis_client.get_client()
        _storage = Storage(
            mode,
            RedisStateStore(client, ttl_seconds=settings.state_ttl_seconds),
            lambda session_id: RedisSessionStore(
                client, session_id, settings.session_duration_seconds
            ),
            redis_client=redis_client,
        )

    elif mode == "memory":
        logger.warning(
            "Using in-memory storage. "
            "WARNING: This only works for single-instance deployments!"
        )
        sessions = MemorySessionBackend(settings.session_duration_seconds)
        _storage = Storage(
            mode,
            MemoryStateStore(ttl_seconds=settings.state_ttl_seconds),
            sessions.session,
        )

    else:
        raise ValueError(
            f"Unknown STORE_BACKEND: {mode}. "
            f"Valid options: redis, memory"
        )

    return _storage


def get_storage() -> Storage:
    """Get the global storage.

    Raises:
        RuntimeError: If initialize_storage() has not been called
    """
    if _storage is None:
        raise RuntimeError("Storage not initialized. Call initialize_storage() first.")
    return _storage


async def close_storage() -> None:
    """Release the global storage"""
    global _storage
    if _storage is not None and _storage.backend == "redis":
        await close_redis_client()
    _storage = None
