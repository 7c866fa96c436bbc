"""Cookie-backed preference storage.

Values are read from the request cookies and written to the response. Values
set during the request are also visible to later reads in the same request.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from starlette.responses import Response

from multiauth_service.core.auth.stores import PreferenceStore

logger = logging.getLogger(__name__)


class CookiePreferenceStore(PreferenceStore):
    """Preferences stored as cookies on the client"""

    def __init__(self, request_cookies: Mapping[str, str], secure: bool = False):
        """Initialize preference store

        Args:
            request_cookies: Cookies sent with the current request
            secure: Only send the cookies over HTTPS
        """
        self.request_cookies = request_cookies
        self.secure = secure
        # name -> (value, set_cookie keyword arguments)
        self._pending: Dict[str, tuple[str, Dict[str, Any]]] = {}

    def get(self, name: str) -> Optional[str]:
        if name in self._pending:
            return self._pending[name][0]
        return self.request_cookies.get(name)

    def set(
        self,
        name: str,
        value: str,
        *,
        lifetime_seconds: int,
        scope_path: str,
        http_only: bool,
    ) -> None:
        self._pending[name] = (
            value,
            {
                "max_age": lifetime_seconds,
                "path": scope_path,
                "httponly": http_only,
                "secure": self.secure,
                "samesite": "lax",
            },
        )
        logger.debug(f"Preference cookie {name} set to {value}")

    def apply(self, response: Response) -> Response:
        """Write the cookies set during this request to the response"""
        for name, (value, params) in self._pending.items():
            response.set_cookie(name, value, **params)
        return response
