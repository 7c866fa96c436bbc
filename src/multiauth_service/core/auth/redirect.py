"""Redirect helpers used to suspend an authentication attempt."""

from typing import Dict, NoReturn, Optional

from multiauth_service.config.settings import get_settings

from .errors import RedirectRequired


def module_url(path: str) -> str:
    """Absolute path of a multiauth endpoint under the installation base path.

    Args:
        path: Endpoint path relative to the multiauth prefix (e.g. "selectsource")

    Returns:
        URL path such as /api/v1/multiauth/selectsource
    """
    return f"{get_settings().module_url_prefix}/{path.lstrip('/')}"


def redirect_to(url: str, params: Optional[Dict[str, str]] = None) -> NoReturn:
    """Redirect the client to a trusted URL.

    Never returns. The HTTP layer turns the raised RedirectRequired into a
    redirect response.

    Args:
        url: Trusted target URL
        params: Query parameters to append

    Raises:
        RedirectRequired: Always
    """
    raise RedirectRequired(url, params)
