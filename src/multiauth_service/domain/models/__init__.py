"""Domain models for MultiAuth Service"""

from multiauth_service.domain.models.api_multiauth import (
    AuthenticationFailure,
    AuthenticationResult,
    LogoutResult,
    SelectSourceRequest,
    SelectSourceResponse,
    SourceOption,
)
from multiauth_service.domain.models.context import (
    AuthContext,
    ErrorInfo,
    SourceDescriptor,
)

__all__ = [
    # Context models
    "AuthContext",
    "ErrorInfo",
    "SourceDescriptor",
    # API models
    "AuthenticationFailure",
    "AuthenticationResult",
    "LogoutResult",
    "SelectSourceRequest",
    "SelectSourceResponse",
    "SourceOption",
]
