"""Authentication source that lets the user choose among other sources.

Flow:
1. authenticate() saves the attempt and redirects to the selection page.
2. The selection page resumes the attempt with the chosen source id and calls
   MultiAuthSource.delegate_authentication(), which checks the choice against
   the sources that were offered, records it in the session and hands the
   attempt to the chosen source.
3. logout() reads the recorded choice from the session and forwards logout to
   the same source.

Configuration (authsources.yml):
    multi:
      type: "multiauth:MultiAuth"
      sources:
        - campus-ldap
        - sms:
            text: {en: "Text message"}
            css-class: sms
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from multiauth_service.domain.models.context import AuthContext, SourceDescriptor

from .descriptors import build_source_descriptors
from .errors import (
    ConfigurationError,
    DelegateFailure,
    InvalidSelection,
    RedirectRequired,
    UnknownSource,
    UnserializableDelegateError,
)
from .provider import AuthSource, complete_authentication
from .redirect import module_url, redirect_to
from .stores import DATA_TIMEOUT_SESSION_END, PreferenceStore, SessionStore, StateStore

if TYPE_CHECKING:
    from .registry import SourceRegistry

logger = logging.getLogger(__name__)


class MultiAuthSource(AuthSource):
    """Broker offering a choice among other authentication sources."""

    # Stage under which the attempt is saved while the user chooses
    STAGE_ID = "multiauth:MultiAuth.StageId"

    # Session namespace holding the chosen source per broker
    SESSION_SOURCE = "multiauth:selectedSource"

    # Cookie remembering the last choice; the broker id is appended
    PREFERENCE_COOKIE_PREFIX = "multiauth_source_"

    def __init__(
        self,
        auth_id: str,
        config: Dict[str, Any],
        registry: "SourceRegistry",
        state_store: StateStore,
        default_language: str = "en",
        selection_url: Optional[str] = None,
        base_path: str = "/",
        preference_lifetime_seconds: int = 60 * 60 * 24 * 90,
    ):
        """Initialize the broker.

        Args:
            auth_id: Identifier of this broker in the authsources configuration
            config: Broker options; "sources" lists the sources offered
            registry: Registry the offered sources are resolved from
            state_store: Store keeping the attempt while the user chooses
            default_language: Language of the default source labels
            selection_url: URL of the selection page
            base_path: Installation base path (scope of the preference cookie)
            preference_lifetime_seconds: Lifetime of the preference cookie

        Raises:
            ConfigurationError: If "sources" is missing or malformed
        """
        super().__init__(auth_id, config)
        self.registry = registry
        self.state_store = state_store
        self.selection_url = selection_url or module_url("selectsource")
        self.base_path = base_path
        self.preference_lifetime_seconds = preference_lifetime_seconds

        self.sources: Tuple[SourceDescriptor, ...] = build_source_descriptors(
            config, default_language, registry
        )
        if any(descriptor.source == auth_id for descriptor in self.sources):
            raise ConfigurationError(f"Authentication source {auth_id} cannot offer itself")

        logger.info(
            f"MultiAuth source {auth_id} offers {len(self.sources)} sources: "
            f"{', '.join(d.source for d in self.sources)}"
        )

    @classmethod
    def from_config(
        cls, auth_id: str, config: Dict[str, Any], registry: "SourceRegistry"
    ) -> "MultiAuthSource":
        """Build a broker from its authsources entry"""
        settings = registry.settings
        return cls(
            auth_id,
            config,
            registry=registry,
            state_store=registry.state_store,
            default_language=settings.language_default,
            base_path=settings.base_path,
            preference_lifetime_seconds=settings.preference_cookie_lifetime_seconds,
        )

    async def authenticate(self, context: AuthContext, session: SessionStore) -> None:
        """Send the user to the source selection page.

        Saves the offered sources on the context, stores the context, and
        redirects with the state id. Never returns; the attempt continues in
        delegate_authentication().

        Args:
            context: Authentication attempt
            session: Session of the current request

        Raises:
            RedirectRequired: Always, pointing at the selection page
        """
        context.broker_auth_id = self.auth_id
        context.offered_sources = list(self.sources)

        state_id = await self.state_store.save(context, self.STAGE_ID)

        params = {"AuthState": state_id}
        # The client may ask for a source up front; the selection page decides
        if context.source_hint:
            params["source"] = context.source_hint

        logger.info(f"Source selection started: broker={self.auth_id}, state={state_id[:8]}...")
        redirect_to(self.selection_url, params)

    @staticmethod
    async def delegate_authentication(
        source_id: str,
        context: AuthContext,
        registry: "SourceRegistry",
        session: SessionStore,
    ) -> AuthContext:
        """Authenticate with the source the user chose.

        The choice is only accepted if it is one of the sources saved on the
        context when the selection started. The choice is written to the
        session before the source runs, so logout is routed to the last source
        tried even if that attempt failed.

        Args:
            source_id: Chosen source
            context: Attempt restored from the state store
            registry: Registry to resolve the source from
            session: Session of the current request

        Returns:
            The completed context

        Raises:
            InvalidSelection: If the source was not offered or does not exist
            RedirectRequired: If the chosen source continues in a later request
            DelegateFailure: If the chosen source failed; the error is also
                attached to context.error
        """
        source = None
        if context.broker_auth_id is not None and source_id in context.offered_ids:
            source = registry.resolve(source_id)
        if source is None:
            logger.warning(
                f"Rejected authentication source {source_id!r} "
                f"(broker={context.broker_auth_id}, offered={context.offered_ids})"
            )
            raise InvalidSelection(source_id)

        await session.set_data(
            MultiAuthSource.SESSION_SOURCE,
            context.broker_auth_id,
            source_id,
            DATA_TIMEOUT_SESSION_END,
        )
        context.selected_source = source_id
        logger.info(f"Delegating authentication: broker={context.broker_auth_id}, source={source_id}")

        try:
            await source.authenticate(context, session)
        except RedirectRequired:
            raise
        except DelegateFailure as e:
            context.error = e.to_error_info()
            logger.warning(f"Authentication failed at {source_id}: {e.code}: {e.message}")
            raise
        except Exception as e:
            wrapped = UnserializableDelegateError.wrap(e)
            context.error = wrapped.to_error_info()
            logger.error(f"Authentication source {source_id} raised {wrapped.original_class}: {e}")
            raise wrapped from e

        return complete_authentication(context)

    async def logout(self, context: AuthContext, session: SessionStore) -> None:
        """Log out from the source used to authenticate this session.

        When the session holds no choice for this broker, the broker's own id
        is looked up instead; since the broker cannot log out from itself,
        that ends in UnknownSource.

        Args:
            context: Logout operation state
            session: Session of the current request

        Raises:
            UnknownSource: If the recorded source cannot be resolved
        """
        source_id = await session.get_data(self.SESSION_SOURCE, self.auth_id)
        if source_id is None:
            logger.warning(f"No source recorded for {self.auth_id} in session; using broker id")
            source_id = self.auth_id

        source = self.registry.resolve(source_id)
        if source is None or source.auth_id == self.auth_id:
            raise UnknownSource(source_id)

        context.broker_auth_id = self.auth_id
        logger.info(f"Forwarding logout: broker={self.auth_id}, source={source_id}")
        await source.logout(context, session)

    @property
    def preference_cookie_name(self) -> str:
        return f"{self.PREFERENCE_COOKIE_PREFIX}{self.auth_id}"

    def set_previous_source(self, source_id: str, preferences: PreferenceStore) -> None:
        """Remember the chosen source on the client for later logins.

        Args:
            source_id: Source the user selected
            preferences: Client-side store of the current request
        """
        preferences.set(
            self.preference_cookie_name,
            source_id,
            lifetime_seconds=self.preference_lifetime_seconds,
            scope_path=self.base_path,
            http_only=False,
        )

    def get_previous_source(self, preferences: PreferenceStore) -> Optional[str]:
        """Source the user selected last time, or None"""
        return preferences.get(self.preference_cookie_name)
