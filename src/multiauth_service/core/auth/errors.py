"""Errors raised by authentication sources and the source broker."""

from typing import Dict, Optional
from urllib.parse import urlencode

from multiauth_service.domain.models.context import ErrorInfo


class MultiAuthError(Exception):
    """Base class for authentication source errors."""
    pass


class ConfigurationError(MultiAuthError):
    """Authentication source configuration is missing or malformed."""
    pass


class InvalidSelection(MultiAuthError):
    """The requested source was not offered, or cannot be resolved."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Invalid authentication source: {source_id}")


class UnknownSource(MultiAuthError):
    """The source recorded for logout cannot be resolved."""

    def __init__(self, source_id: Optional[str]):
        self.source_id = source_id
        super().__init__(f"Invalid authentication source during logout: {source_id}")


class StateNotFound(MultiAuthError):
    """Saved authentication state is missing, expired or from another stage."""

    def __init__(self, state_id: str, reason: str = "not found or expired"):
        self.state_id = state_id
        self.reason = reason
        # Only a prefix of the state id ends up in messages and logs
        super().__init__(f"Authentication state {state_id[:8]}... {reason}")


class DelegateFailure(MultiAuthError):
    """Authentication failed inside a delegate source.

    Delegates raise this for expected, user-facing failures (wrong password,
    cancelled login). It serializes to an ErrorInfo so it can be stored on the
    authentication context and survive a redirect.
    """

    def __init__(self, message: str, code: str = "AUTHENTICATION_FAILED"):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_error_info(self) -> ErrorInfo:
        """Serialize for attachment to an AuthContext"""
        return ErrorInfo(code=self.code, message=self.message)

    @classmethod
    def from_error_info(cls, info: ErrorInfo) -> "DelegateFailure":
        """Rebuild an error previously attached to a context"""
        if info.original_class is not None:
            return UnserializableDelegateError.from_error_info(info)
        return cls(info.message, code=info.code)


class UnserializableDelegateError(DelegateFailure):
    """Wraps an arbitrary exception raised by a delegate.

    Only the class name and message of the original exception are kept, so
    the error stays serializable whatever the delegate raised.
    """

    def __init__(self, message: str, original_class: str):
        self.original_class = original_class
        super().__init__(message, code="UNSERIALIZABLE_EXCEPTION")

    @classmethod
    def wrap(cls, exc: BaseException) -> "UnserializableDelegateError":
        return cls(str(exc), type(exc).__name__)

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            code=self.code,
            message=self.message,
            original_class=self.original_class,
        )

    @classmethod
    def from_error_info(cls, info: ErrorInfo) -> "UnserializableDelegateError":
        return cls(info.message, info.original_class or "Exception")


class RedirectRequired(Exception):
    """Control leaves the service: the client must be redirected.

    Raised to suspend an authentication attempt. Code after the raising call
    never runs; the attempt continues in a later request.
    """

    def __init__(self, url: str, params: Optional[Dict[str, str]] = None):
        self.url = url
        self.params = dict(params or {})
        super().__init__(f"Redirect to {url}")

    @property
    def location(self) -> str:
        """Full redirect target including query parameters"""
        if not self.params:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode(self.params)}"
