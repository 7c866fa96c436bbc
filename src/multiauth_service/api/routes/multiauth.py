"""MultiAuth Routes

Purpose: FastAPI routes driving authentication through configured sources

Key Endpoints:
- GET /api/v1/multiauth/login/{auth_id}: Start an attempt at a source
- GET /api/v1/multiauth/selectsource: Sources to choose from (selection page)
- POST /api/v1/multiauth/selectsource: Submit the chosen source
- POST /api/v1/multiauth/logout/{auth_id}: Log out through a source
- GET /api/v1/multiauth/health: Authentication system health
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.responses import Response

from multiauth_service.config.settings import Settings, get_settings
from multiauth_service.core.auth import (
    AuthSource,
    DelegateFailure,
    InvalidSelection,
    RedirectRequired,
    SessionStore,
    SourceRegistry,
    complete_authentication,
    get_source_registry,
)
from multiauth_service.core.auth.multiauth import MultiAuthSource
from multiauth_service.domain.models import (
    AuthContext,
    AuthenticationFailure,
    AuthenticationResult,
    LogoutResult,
    SelectSourceRequest,
    SelectSourceResponse,
    SourceOption,
)
from multiauth_service.infrastructure.auth.preference_store import CookiePreferenceStore
from multiauth_service.infrastructure.auth.session_store import new_session_id
from multiauth_service.infrastructure.auth.storage import Storage, get_storage

# Initialize router and logger
router = APIRouter(prefix="/api/v1/multiauth", tags=["multiauth"])
logger = logging.getLogger(__name__)


@dataclass
class RequestSession:
    """Session of the current request"""
    store: SessionStore
    is_new: bool


# Dependency injection functions
async def get_session(
    request: Request,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> RequestSession:
    """Get the session named by the session cookie, or start a new one"""
    session_id = request.cookies.get(settings.session_cookie_name)
    if session_id:
        return RequestSession(storage.session(session_id), is_new=False)
    return RequestSession(storage.session(new_session_id()), is_new=True)


async def get_preferences(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> CookiePreferenceStore:
    """Get the cookie preference store of the current request"""
    return CookiePreferenceStore(request.cookies, secure=settings.cookie_secure)


def get_broker(registry: SourceRegistry, auth_id: Optional[str]) -> MultiAuthSource:
    """Resolve the broker an attempt was saved by"""
    broker = registry.resolve(auth_id)
    if not isinstance(broker, MultiAuthSource):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{auth_id} is not a MultiAuth authentication source",
        )
    return broker


def resolve_source(registry: SourceRegistry, auth_id: str) -> AuthSource:
    source = registry.resolve(auth_id)
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No authentication source with id {auth_id}",
        )
    return source


def is_local_url(url: str) -> bool:
    """Only same-site paths are accepted as return targets"""
    parsed = urlparse(url)
    return not parsed.scheme and not parsed.netloc and url.startswith("/") and not url.startswith("//")


def finish(
    response: Response,
    session: RequestSession,
    settings: Settings,
    preferences: Optional[CookiePreferenceStore] = None,
) -> Response:
    """Attach the session cookie and pending preference cookies"""
    if session.is_new:
        response.set_cookie(
            settings.session_cookie_name,
            session.store.session_id,
            max_age=settings.session_duration_seconds,
            path=settings.base_path,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )
    if preferences is not None:
        preferences.apply(response)
    return response


def completed_response(context: AuthContext) -> Response:
    """Response for a finished authentication attempt"""
    if context.return_url:
        return RedirectResponse(context.return_url, status_code=status.HTTP_303_SEE_OTHER)
    result = AuthenticationResult(
        auth_id=context.auth_id,
        source=context.selected_source,
        attributes=context.attributes,
    )
    return JSONResponse(result.model_dump())


def failure_response(error: DelegateFailure) -> Response:
    """Response for an attempt the authenticating source rejected"""
    body = AuthenticationFailure(
        error=error.code,
        message=error.message,
        details=error.to_error_info(),
    )
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=body.model_dump())


# Endpoints
@router.get("/login/{auth_id}")
async def login(
    auth_id: str,
    return_to: Optional[str] = Query(None, alias="ReturnTo", description="Path to return to afterwards"),
    source: Optional[str] = Query(None, description="Source to preselect (MultiAuth only)"),
    registry: SourceRegistry = Depends(get_source_registry),
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Start an authentication attempt at a source.

    For a MultiAuth source this redirects to the selection page.

    Args:
        auth_id: Source to authenticate with
        return_to: Local path to redirect to once authenticated
        source: Source hint passed on to the selection page

    Returns:
        Redirect, or the authentication result for sources that finish at once
    """
    if return_to is not None and not is_local_url(return_to):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ReturnTo must be a local path",
        )

    auth_source = resolve_source(registry, auth_id)
    context = AuthContext(auth_id=auth_id, return_url=return_to, source_hint=source)

    try:
        await auth_source.authenticate(context, session.store)
        response = completed_response(complete_authentication(context))
    except RedirectRequired as redirect:
        response = RedirectResponse(redirect.location, status_code=status.HTTP_302_FOUND)
    except DelegateFailure as e:
        logger.warning(f"Login failed at {auth_id}: {e}")
        response = failure_response(e)

    return finish(response, session, settings)


@router.get("/selectsource")
async def select_source_page(
    auth_state: str = Query(..., alias="AuthState"),
    source: Optional[str] = Query(None, description="Source chosen up front"),
    registry: SourceRegistry = Depends(get_source_registry),
    storage: Storage = Depends(get_storage),
    session: RequestSession = Depends(get_session),
    preferences: CookiePreferenceStore = Depends(get_preferences),
    settings: Settings = Depends(get_settings),
):
    """Describe the sources the user can choose from.

    When a source is given (the client asked for one when starting the
    attempt), authentication is delegated to it right away.

    Returns:
        SelectSourceResponse, or the outcome of the delegated authentication
    """
    if source:
        return await delegate(auth_state, source, False, registry, storage, session, preferences, settings)

    context = await storage.state_store.load(auth_state, MultiAuthSource.STAGE_ID)
    broker = get_broker(registry, context.broker_auth_id)

    previous = broker.get_previous_source(preferences)
    preselected = previous if previous in context.offered_ids else None

    language = settings.language_default
    return SelectSourceResponse(
        auth_state=auth_state,
        broker=broker.auth_id,
        sources=[
            SourceOption(
                source=descriptor.source,
                text=descriptor.text,
                css_class=descriptor.css_class,
                label=descriptor.label(language, settings.language_default),
            )
            for descriptor in context.offered_sources
        ],
        preselected=preselected,
    )


@router.post("/selectsource")
async def select_source(
    request: SelectSourceRequest,
    registry: SourceRegistry = Depends(get_source_registry),
    storage: Storage = Depends(get_storage),
    session: RequestSession = Depends(get_session),
    preferences: CookiePreferenceStore = Depends(get_preferences),
    settings: Settings = Depends(get_settings),
):
    """Continue an attempt with the source the user chose.

    Args:
        request: State id, chosen source and whether to remember the choice

    Returns:
        Redirect to the return path, the authentication result, or a 401
        describing why the chosen source rejected the user
    """
    return await delegate(
        request.auth_state, request.source, request.remember,
        registry, storage, session, preferences, settings,
    )


async def delegate(
    state_id: str,
    source_id: str,
    remember: bool,
    registry: SourceRegistry,
    storage: Storage,
    session: RequestSession,
    preferences: CookiePreferenceStore,
    settings: Settings,
) -> Response:
    """Resume a saved attempt and delegate it to the chosen source.

    An invalid choice leaves the saved attempt in place, so the user can
    still pick another source from the selection page.
    """
    context = await storage.state_store.load(state_id, MultiAuthSource.STAGE_ID)
    broker = get_broker(registry, context.broker_auth_id)

    if source_id not in context.offered_ids or registry.resolve(source_id) is None:
        logger.warning(f"Rejected source {source_id!r} for broker {broker.auth_id}")
        raise InvalidSelection(source_id)

    # Only one request can take the attempt past this point
    context = await storage.state_store.consume(state_id, MultiAuthSource.STAGE_ID)

    if remember and source_id in context.offered_ids:
        broker.set_previous_source(source_id, preferences)

    try:
        await MultiAuthSource.delegate_authentication(source_id, context, registry, session.store)
        response = completed_response(context)
    except RedirectRequired as redirect:
        response = RedirectResponse(redirect.location, status_code=status.HTTP_303_SEE_OTHER)
    except DelegateFailure as e:
        response = failure_response(e)

    # The chosen source is in the session now, even if it failed
    return finish(response, session, settings, preferences)


@router.post("/logout/{auth_id}")
async def logout(
    auth_id: str,
    registry: SourceRegistry = Depends(get_source_registry),
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Log out through a source.

    For a MultiAuth source, logout is forwarded to the source the session
    authenticated with.

    Returns:
        Logout confirmation, or a redirect if the source logs out remotely
    """
    auth_source = resolve_source(registry, auth_id)
    context = AuthContext(auth_id=auth_id)

    try:
        await auth_source.logout(context, session.store)
        response = JSONResponse(
            LogoutResult(message="Logged out successfully", auth_id=auth_id).model_dump()
        )
    except RedirectRequired as redirect:
        response = RedirectResponse(redirect.location, status_code=status.HTTP_302_FOUND)

    logger.info(f"Logout through {auth_id} finished")
    return finish(response, session, settings)


@router.get("/health")
async def multiauth_health(
    registry: SourceRegistry = Depends(get_source_registry),
    storage: Storage = Depends(get_storage),
):
    """Authentication system health check.

    Reports the storage backend; with Redis, the connection is pinged.
    """
    store_healthy = await storage.health_check()
    return {
        "status": "healthy" if store_healthy else "degraded",
        "service": "multiauth",
        "store": {"backend": storage.backend, "healthy": store_healthy},
        "sources": registry.source_ids(),
    }
