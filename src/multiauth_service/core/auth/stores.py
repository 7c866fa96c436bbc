"""Storage contracts used by authentication sources.

Three stores carry data beyond a single request:

- StateStore: the authentication context, across a redirect
- SessionStore: per-session data, e.g. which source a session logged in with
- PreferenceStore: long-lived client-side values (cookies)

Implementations live in multiauth_service.infrastructure.auth.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from multiauth_service.domain.models.context import AuthContext

# Session data timeout meaning "keep until the session ends"
DATA_TIMEOUT_SESSION_END = "session-end"

SessionTimeout = Union[int, str]


class StateStore(ABC):
    """Persists authentication contexts across redirects.

    A context is saved under a stage identifier. Loading it with a different
    stage fails, so a state id issued by one step cannot be replayed into
    another.
    """

    @abstractmethod
    async def save(self, context: AuthContext, stage: str) -> str:
        """Save a context and return a fresh opaque state id.

        Args:
            context: Context to persist
            stage: Stage the context is saved for

        Returns:
            State id to hand to the client
        """
        pass

    @abstractmethod
    async def load(self, state_id: str, stage: str) -> AuthContext:
        """Load a saved context without removing it.

        Raises:
            StateNotFound: Unknown or expired id, or saved for another stage
        """
        pass

    @abstractmethod
    async def consume(self, state_id: str, stage: str) -> AuthContext:
        """Load a saved context and remove it atomically.

        A second consume of the same id fails, so a resumed attempt cannot be
        resumed again.

        Raises:
            StateNotFound: Unknown, expired or already consumed id, or saved
                for another stage
        """
        pass


class SessionStore(ABC):
    """Data attached to the current user session."""

    session_id: str

    @abstractmethod
    async def set_data(
        self,
        namespace: str,
        key: str,
        value: str,
        timeout: SessionTimeout = DATA_TIMEOUT_SESSION_END,
    ) -> None:
        """Store a value in the session.

        Args:
            namespace: Data namespace (e.g. "multiauth:selectedSource")
            key: Key within the namespace
            value: Value to store
            timeout: Lifetime in seconds, or DATA_TIMEOUT_SESSION_END
        """
        pass

    @abstractmethod
    async def get_data(self, namespace: str, key: str) -> Optional[str]:
        """Return a stored value, or None when absent or expired"""
        pass


class PreferenceStore(ABC):
    """Long-lived client-side key/value storage."""

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the stored value, or None if the client has none"""
        pass

    @abstractmethod
    def set(
        self,
        name: str,
        value: str,
        *,
        lifetime_seconds: int,
        scope_path: str,
        http_only: bool,
    ) -> None:
        """Store a value on the client.

        Args:
            name: Value name
            value: Value to store
            lifetime_seconds: How long the client keeps the value
            scope_path: URL path the value is sent for
            http_only: Hide the value from client-side scripts
        """
        pass
