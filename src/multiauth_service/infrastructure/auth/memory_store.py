"""In-memory state and session storage.

Used with STORE_BACKEND=memory for development and tests.
WARNING: This only works for single-instance deployments!
In production with multiple workers, you MUST use Redis.
"""

import asyncio
import logging
import time
from typing import Dict, Optional, Tuple

from multiauth_service.core.auth.errors import StateNotFound
from multiauth_service.core.auth.stores import (
    DATA_TIMEOUT_SESSION_END,
    SessionStore,
    SessionTimeout,
    StateStore,
)
from multiauth_service.domain.models.context import AuthContext

from .session_store import decode_entry, encode_entry
from .state_store import decode_context, new_state_id

logger = logging.getLogger(__name__)


class MemoryStateStore(StateStore):
    """Authentication state kept in process memory"""

    def __init__(self, ttl_seconds: int = 900):
        self.ttl_seconds = ttl_seconds
        # (stage, state_id) -> (expires_at, context_json)
        self._states: Dict[Tuple[str, str], Tuple[float, str]] = {}
        self._lock = asyncio.Lock()

    async def save(self, context: AuthContext, stage: str) -> str:
        state_id = new_state_id()
        async with self._lock:
            self._purge_expired()
            self._states[(stage, state_id)] = (
                time.time() + self.ttl_seconds,
                context.model_dump_json(),
            )
        logger.debug(f"Saved authentication state {state_id[:8]}... in memory (stage: {stage})")
        return state_id

    async def load(self, state_id: str, stage: str) -> AuthContext:
        async with self._lock:
            self._purge_expired()
            entry = self._states.get((stage, state_id))
        return decode_context(state_id, entry[1] if entry else None)

    async def consume(self, state_id: str, stage: str) -> AuthContext:
        async with self._lock:
            self._purge_expired()
            entry = self._states.pop((stage, state_id), None)
        if entry is None:
            logger.warning(f"Authentication state {state_id[:8]}... missing or already used")
        return decode_context(state_id, entry[1] if entry else None)

    def _purge_expired(self) -> None:
        now = time.time()
        expired = [key for key, (expires_at, _) in self._states.items() if expires_at < now]
        for key in expired:
            del self._states[key]


class MemorySessionBackend:
    """Session data of all sessions, kept in process memory"""

    def __init__(self, duration_seconds: int):
        self.duration_seconds = duration_seconds
        # session_id -> (expires_at, {field: entry_json})
        self._sessions: Dict[str, Tuple[float, Dict[str, str]]] = {}
        self._lock = asyncio.Lock()

    def session(self, session_id: str) -> "MemorySessionStore":
        return MemorySessionStore(self, session_id)

    async def get_field(self, session_id: str, field: str) -> Optional[str]:
        async with self._lock:
            self._purge_expired()
            entry = self._sessions.get(session_id)
        if entry is None:
            return None
        return entry[1].get(field)

    async def set_field(self, session_id: str, field: str, raw: str) -> None:
        async with self._lock:
            self._purge_expired()
            _, fields = self._sessions.get(session_id, (0.0, {}))
            fields[field] = raw
            self._sessions[session_id] = (time.time() + self.duration_seconds, fields)

    def _purge_expired(self) -> None:
        now = time.time()
        expired = [
            session_id
            for session_id, (expires_at, _) in self._sessions.items()
            if expires_at < now
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.debug(f"Purged {len(expired)} expired sessions from memory")


class MemorySessionStore(SessionStore):
    """Session data of one session in a MemorySessionBackend"""

    def __init__(self, backend: MemorySessionBackend, session_id: str):
        self.backend = backend
        self.session_id = session_id

    async def set_data(
        self,
        namespace: str,
        key: str,
        value: str,
        timeout: SessionTimeout = DATA_TIMEOUT_SESSION_END,
    ) -> None:
        await self.backend.set_field(self.session_id, f"{namespace}|{key}", encode_entry(value, timeout))

    async def get_data(self, namespace: str, key: str) -> Optional[str]:
        return decode_entry(await self.backend.get_field(self.session_id, f"{namespace}|{key}"))
