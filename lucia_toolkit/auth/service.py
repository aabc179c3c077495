# lucia_toolkit/auth/service.py
import logging
import time
from typing import Generic, Mapping, Optional, Tuple, TypeVar

from ..errors import AuthErrorKind, ToolkitError, auth_error, is_not_found
from ..utils.security import generate_id, generate_state
from .models import DEFAULT_SESSION_TTL_SECONDS, Session
from .providers.base import AbstractOAuthProvider
from .storage_interfaces import AbstractSessionStore, AbstractUserStore

logger = logging.getLogger(__name__)

U = TypeVar("U")


def _describe(exc: Exception) -> str:
    return exc.message if isinstance(exc, ToolkitError) else str(exc)


class AuthService(Generic[U]):
    """
    Orchestrates OAuth logins and the sessions that result from them.

    A login runs: exchange code -> fetch user info -> find or create user ->
    create session. Each step reports its own AuthError kind on failure; a
    user created before a failing session write is kept.

    The provider registry is fixed at construction time.
    """

    def __init__(
        self,
        user_store: AbstractUserStore[U],
        session_store: AbstractSessionStore,
        providers: Optional[Mapping[str, AbstractOAuthProvider]] = None,
        session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    ):
        self.user_store = user_store
        self.session_store = session_store
        self._providers = dict(providers or {})
        self.session_ttl_seconds = session_ttl_seconds
        logger.info(
            f"AuthService initialized with providers {sorted(self._providers)} "
            f"and session TTL {session_ttl_seconds}s."
        )

    @property
    def provider_names(self) -> Tuple[str, ...]:
        return tuple(self._providers)

    def get_provider(self, provider_name: str) -> AbstractOAuthProvider:
        provider = self._providers.get(provider_name)
        if provider is None:
            logger.warning(f"Unknown OAuth provider requested: '{provider_name}'.")
            raise auth_error(AuthErrorKind.UNKNOWN_PROVIDER, f"Unknown provider: {provider_name}")
        return provider

    def get_auth_url(self, provider_name: str) -> Tuple[str, str]:
        """
        Build the provider authorization URL with a fresh random state.

        The caller is responsible for storing the state and comparing it on callback.

        Returns:
            (auth_url, state)
        """
        provider = self.get_provider(provider_name)
        state = generate_state()
        logger.debug(f"Issued auth URL for provider '{provider_name}'.")
        return provider.get_auth_url(state), state

    async def handle_callback(self, provider_name: str, code: str) -> Session:
        """
        Complete a login from the provider callback and return the new session.

        Raises:
            AuthError: UnknownProvider, TokenExchangeError, UserInfoError,
                UserCreationFailed, DatabaseError or SessionCreationFailed
        """
        provider = self.get_provider(provider_name)

        try:
            token = await provider.exchange_code(code)
        except Exception as e:
            logger.warning(f"Code exchange with '{provider_name}' failed: {e}")
            raise auth_error(
                AuthErrorKind.TOKEN_EXCHANGE_ERROR,
                f"Failed to exchange code: {_describe(e)}"
            ) from e

        try:
            user_info = await provider.get_user_info(token)
        except Exception as e:
            logger.warning(f"Fetching user info from '{provider_name}' failed: {e}")
            raise auth_error(
                AuthErrorKind.USER_INFO_ERROR,
                f"Failed to get user info: {_describe(e)}"
            ) from e

        try:
            user = await self.user_store.get_user_by_provider_id(provider_name, user_info.external_id)
            logger.info(f"Existing user '{user.id}' logged in through '{provider_name}'.")
        except Exception as e:
            if not is_not_found(e):
                logger.error(f"User lookup for {provider_name}:{user_info.external_id} failed: {e}")
                raise auth_error(
                    AuthErrorKind.DATABASE_ERROR,
                    f"Failed to look up user: {_describe(e)}"
                ) from e
            try:
                user = await self.user_store.create_user(user_info)
            except Exception as create_exc:
                logger.error(f"Creating user for {provider_name}:{user_info.external_id} failed: {create_exc}")
                raise auth_error(
                    AuthErrorKind.USER_CREATION_FAILED,
                    f"Failed to create user: {_describe(create_exc)}"
                ) from create_exc
            logger.info(f"Created user '{user.id}' on first login through '{provider_name}'.")

        return await self.create_session(user.id)

    async def create_session(self, user_id: str) -> Session:
        """Persist a new session for the user, valid for the configured TTL."""
        session = Session(
            id=generate_id(),
            user_id=user_id,
            expires_at=int(time.time()) + self.session_ttl_seconds,
        )
        try:
            await self.session_store.create_session(session)
        except Exception as e:
            logger.error(f"Creating session for user '{user_id}' failed: {e}")
            raise auth_error(
                AuthErrorKind.SESSION_CREATION_FAILED,
                f"Failed to create session: {_describe(e)}"
            ) from e
        logger.info(f"Created session for user '{user_id}', expires at {session.expires_at}.")
        return session

    async def get_session(self, session_id: str) -> Session:
        try:
            return await self.session_store.get_session(session_id)
        except Exception as e:
            if is_not_found(e):
                raise auth_error(AuthErrorKind.USER_SESSION_NOT_FOUND, _describe(e)) from e
            logger.error(f"Reading session failed: {e}", exc_info=True)
            raise auth_error(
                AuthErrorKind.DATABASE_ERROR,
                f"Failed to get session: {_describe(e)}"
            ) from e

    async def logout(self, session_id: str) -> None:
        """Delete the session. Unknown ids raise SessionDeletionFailed."""
        try:
            await self.session_store.delete_session(session_id)
        except Exception as e:
            if is_not_found(e):
                raise auth_error(
                    AuthErrorKind.SESSION_DELETION_FAILED,
                    f"Failed to delete session: {_describe(e)}"
                ) from e
            logger.error(f"Deleting session failed: {e}", exc_info=True)
            raise auth_error(
                AuthErrorKind.DATABASE_ERROR,
                f"Failed to delete session: {_describe(e)}"
            ) from e
        logger.info("Session deleted.")

    async def delete_session(self, session_id: str) -> None:
        await self.logout(session_id)
