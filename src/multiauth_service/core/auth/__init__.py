"""Authentication source abstraction layer.

Sources are declared in authsources.yml and resolved by id:
- multiauth:MultiAuth: lets the user choose among other sources
- exampleauth:Static: fixed attributes, for development
"""

from .errors import (
    ConfigurationError,
    DelegateFailure,
    InvalidSelection,
    MultiAuthError,
    RedirectRequired,
    StateNotFound,
    UnknownSource,
    UnserializableDelegateError,
)
from .provider import AuthSource, complete_authentication
from .registry import SourceRegistry, get_source_registry, initialize_source_registry
from .stores import DATA_TIMEOUT_SESSION_END, PreferenceStore, SessionStore, StateStore

__all__ = [
    "AuthSource",
    "complete_authentication",
    "SourceRegistry",
    "get_source_registry",
    "initialize_source_registry",
    "StateStore",
    "SessionStore",
    "PreferenceStore",
    "DATA_TIMEOUT_SESSION_END",
    "MultiAuthError",
    "ConfigurationError",
    "InvalidSelection",
    "UnknownSource",
    "StateNotFound",
    "DelegateFailure",
    "UnserializableDelegateError",
    "RedirectRequired",
]
