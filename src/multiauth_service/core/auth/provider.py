"""Abstract authentication source interface.

This module defines the contract that all authentication sources must implement.
Sources are declared in the authsources configuration and resolved by id at
runtime, so a broker can hand an attempt to any of them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from multiauth_service.domain.models.context import AuthContext

from .stores import SessionStore

logger = logging.getLogger(__name__)


class AuthSource(ABC):
    """Abstract interface for authentication sources.

    A source either finishes authentication inside authenticate() (returning
    normally with attributes set on the context), suspends it by raising
    RedirectRequired after saving the context, or fails by raising
    DelegateFailure.

    Example authsources.yml entry:
        campus-ldap:
          type: "ldap:LDAP"
          hostname: ldap.example.org
    """

    def __init__(self, auth_id: str, config: Dict[str, Any]):
        """Initialize authentication source.

        Args:
            auth_id: Identifier of this source in the authsources configuration
            config: Source-specific options
        """
        self.auth_id = auth_id
        self.config = config

    @abstractmethod
    async def authenticate(self, context: AuthContext, session: SessionStore) -> None:
        """Authenticate the user.

        Args:
            context: Authentication attempt; attributes are written to it
            session: Session of the current request

        Raises:
            RedirectRequired: Authentication continues in a later request
            DelegateFailure: Authentication failed
        """
        pass

    async def logout(self, context: AuthContext, session: SessionStore) -> None:
        """Log out from this source.

        Sources without any logout logic of their own keep this default.

        Args:
            context: Logout operation state
            session: Session of the current request
        """
        pass


def complete_authentication(context: AuthContext) -> AuthContext:
    """Mark an authentication attempt as finished.

    Args:
        context: Context of an attempt whose source returned successfully

    Returns:
        The same context, flagged as completed
    """
    context.completed = True
    context.error = None
    if context.selected_source is None:
        context.selected_source = context.auth_id
    logger.info(
        f"Authentication completed: auth_id={context.auth_id}, "
        f"source={context.selected_source}"
    )
    return context
