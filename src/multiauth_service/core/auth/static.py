"""Static authentication source for development.

Authenticates every attempt with a fixed set of attributes, without asking for
credentials. Useful as a delegate while wiring up a broker locally.

Configuration (authsources.yml):
    dev-user:
      type: "exampleauth:Static"
      attributes:
        uid: [developer]
        eduPersonAffiliation: [member, employee]
"""

import logging
from typing import Any, Dict, List

from multiauth_service.domain.models.context import AuthContext

from .errors import ConfigurationError
from .provider import AuthSource
from .stores import SessionStore

logger = logging.getLogger(__name__)


class StaticSource(AuthSource):
    """Source that always succeeds with configured attributes."""

    def __init__(self, auth_id: str, config: Dict[str, Any]):
        super().__init__(auth_id, config)
        self.attributes = self._normalize_attributes(config.get("attributes", {}))

        if config.get("warn", True):
            logger.warning(
                f"Static authentication source {auth_id} is enabled! "
                "It logs everyone in without credentials."
            )

    async def authenticate(self, context: AuthContext, session: SessionStore) -> None:
        context.attributes = {name: list(values) for name, values in self.attributes.items()}
        logger.info(f"Static source {self.auth_id} authenticated session {session.session_id[:8]}...")

    async def logout(self, context: AuthContext, session: SessionStore) -> None:
        logger.info(f"Static source {self.auth_id} logged out session {session.session_id[:8]}...")

    def _normalize_attributes(self, attributes: Any) -> Dict[str, List[str]]:
        if not isinstance(attributes, dict):
            raise ConfigurationError(f"attributes of {self.auth_id} must be a mapping")

        normalized = {}
        for name, values in attributes.items():
            # Single values are accepted as shorthand for a one-element list
            if not isinstance(values, list):
                values = [values]
            normalized[str(name)] = [str(value) for value in values]
        return normalized
