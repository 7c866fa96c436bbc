"""
Pytest configuration and fixtures for the MultiAuth service tests.

Provides fixtures for:
- A recording authentication source used as delegate
- Source registry with in-memory state storage
- Session stores
- Test HTTP client
"""

from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from multiauth_service.config.settings import Settings, get_settings
from multiauth_service.core.auth import (
    AuthSource,
    DelegateFailure,
    RedirectRequired,
    SessionStore,
    SourceRegistry,
    get_source_registry,
)
from multiauth_service.core.auth.multiauth import MultiAuthSource
from multiauth_service.core.auth import registry as registry_module
from multiauth_service.domain.models import AuthContext
from multiauth_service.infrastructure.auth.memory_store import (
    MemorySessionBackend,
    MemoryStateStore,
)
from multiauth_service.infrastructure.auth.storage import Storage, get_storage
from multiauth_service.main import app


class RecordingSource(AuthSource):
    """Delegate source that records every call.

    The "behaviour" option selects the outcome of authenticate():
    succeed (default), fail, crash or redirect.
    """

    def __init__(self, auth_id, config):
        super().__init__(auth_id, config)
        self.authenticate_calls: List[AuthContext] = []
        self.logout_calls: List[AuthContext] = []
        # Session binding as seen at the moment authenticate() ran
        self.binding_seen: List[Optional[str]] = []

    async def authenticate(self, context: AuthContext, session: SessionStore) -> None:
        self.authenticate_calls.append(context)
        self.binding_seen.append(
            await session.get_data(MultiAuthSource.SESSION_SOURCE, context.broker_auth_id)
        )

        behaviour = self.config.get("behaviour", "succeed")
        if behaviour == "fail":
            raise DelegateFailure("Incorrect username or password", code="WRONGUSERPASS")
        if behaviour == "crash":
            raise ConnectionError("LDAP server unreachable")
        if behaviour == "redirect":
            raise RedirectRequired("/remote/login", {"AuthState": "remote-state"})

        context.attributes = {"uid": [f"user@{self.auth_id}"]}

    async def logout(self, context: AuthContext, session: SessionStore) -> None:
        self.logout_calls.append(context)


@pytest.fixture(autouse=True)
def recording_source_type(monkeypatch):
    """Make RecordingSource available as type "test:Recording"

    Registrations go to a per-test copy of the type table.
    """
    monkeypatch.setattr(registry_module, "SOURCE_TYPES", dict(registry_module.SOURCE_TYPES))
    registry_module.register_source_type("test:Recording", RecordingSource)


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests (in-memory storage)"""
    return Settings(
        store_backend="memory",
        language_default="en",
        base_path="/",
        session_cookie_name="multiauth_session",
    )


@pytest.fixture
def authsources() -> dict:
    """Source configuration shared by the tests"""
    return {
        "multi1": {"type": "multiauth:MultiAuth", "sources": ["ldap", "sms"]},
        "multi2": {
            "type": "multiauth:MultiAuth",
            "sources": [
                "ldap",
                {"failing": {"text": {"en": "Failing login"}}},
                "crashing",
                "remote",
            ],
        },
        "ldap": {"type": "test:Recording"},
        "sms": {"type": "test:Recording"},
        "failing": {"type": "test:Recording", "behaviour": "fail"},
        "crashing": {"type": "test:Recording", "behaviour": "crash"},
        "remote": {"type": "test:Recording", "behaviour": "redirect"},
        # Configured, but not offered by any broker
        "admin-backdoor": {"type": "test:Recording"},
    }


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore(ttl_seconds=900)


@pytest.fixture
def registry(authsources, state_store, test_settings) -> SourceRegistry:
    return SourceRegistry(authsources, state_store, test_settings)


@pytest.fixture
def session_backend() -> MemorySessionBackend:
    return MemorySessionBackend(duration_seconds=3600)


@pytest.fixture
def session(session_backend) -> SessionStore:
    return session_backend.session("session-123")


@pytest_asyncio.fixture
async def client(
    registry: SourceRegistry,
    state_store: MemoryStateStore,
    session_backend: MemorySessionBackend,
    test_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with storage and registry overrides."""
    storage = Storage("memory", state_store, session_backend.session)

    app.dependency_overrides[get_source_registry] = lambda: registry
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_settings] = lambda: test_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
