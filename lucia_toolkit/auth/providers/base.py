# lucia_toolkit/auth/providers/base.py
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ...errors import unauthorized, unexpected_error, service_unavailable
from ..models import OAuthToken, UserInfo

logger = logging.getLogger(__name__)


class AbstractOAuthProvider(ABC):
    """
    External identity provider implementing the OAuth2 authorization-code grant.

    Subclasses supply the endpoint specifics; this base class owns the HTTP
    plumbing and maps transport failures onto the toolkit error taxonomy:
    non-2xx responses become Unauthorized, transport or decoding failures
    become UnexpectedError and timeouts become ServiceUnavailable. No call is
    ever retried.
    """

    name: str = "oauth"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._http_client = http_client
        logger.info(f"{type(self).__name__} initialized for redirect URI '{redirect_uri}'.")

    @abstractmethod
    def get_auth_url(self, state: str) -> str:
        """Build the provider authorization URL carrying the given state."""
        pass

    @abstractmethod
    async def exchange_code(self, code: str) -> OAuthToken:
        """Exchange an authorization code for a token."""
        pass

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> OAuthToken:
        """Obtain a new access token using a refresh token."""
        pass

    @abstractmethod
    async def _fetch_user_info(self, token: OAuthToken) -> UserInfo:
        """Fetch and normalize the user profile with a valid access token."""
        pass

    async def get_user_info(self, token: OAuthToken) -> UserInfo:
        """
        Fetch the user profile, refreshing the token first when it is about to expire.

        The returned UserInfo carries the (possibly refreshed) token so callers
        can re-synchronize their own copy.
        """
        await token.refresh_if_needed(self)
        user_info = await self._fetch_user_info(token)
        user_info.token = token
        return user_info

    async def _request_json(
        self,
        method: str,
        url: str,
        action: str,
        **kwargs: Any
    ) -> Any:
        """
        Perform a single HTTP call and decode its JSON body.

        Args:
            method: HTTP method
            url: Absolute endpoint URL
            action: Human-readable description used in error messages
            **kwargs: Passed through to httpx

        Raises:
            ApiError: Unauthorized, UnexpectedError or ServiceUnavailable
        """
        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{self.name}: timed out trying to {action}: {e}")
            raise service_unavailable(f"Failed to {action}: request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.name}: transport error trying to {action}: {e}", exc_info=True)
            raise unexpected_error(f"Failed to {action}: {e}") from e

        if not response.is_success:
            logger.warning(
                f"{self.name}: failed to {action}. Status: {response.status_code}, "
                f"Body: {response.text[:200]!r}"
            )
            raise unauthorized(f"Failed to {action}: status code {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{self.name}: could not decode response while trying to {action}: {e}")
            raise unexpected_error(f"Failed to decode response to {action}: {e}") from e

    def _token_from_response(
        self,
        data: Dict[str, Any],
        action: str,
        default_lifetime_seconds: Optional[int] = None
    ) -> OAuthToken:
        """Build an OAuthToken from a token endpoint payload."""
        if not isinstance(data, dict) or not data.get("access_token"):
            error = data.get("error") if isinstance(data, dict) else None
            description = data.get("error_description") if isinstance(data, dict) else None
            logger.warning(f"{self.name}: token response without access_token ({error}: {description}).")
            raise unauthorized(f"Failed to {action}: {description or error or 'no access token returned'}")

        expires_at = 0
        expires_in = data.get("expires_in")
        if expires_in is not None:
            try:
                expires_at = int(time.time()) + int(expires_in)
            except (TypeError, ValueError):
                logger.warning(f"{self.name}: could not convert expires_in '{expires_in}' to an integer.")
        elif default_lifetime_seconds is not None:
            expires_at = int(time.time()) + default_lifetime_seconds

        return OAuthToken(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or "",
            expires_at=expires_at,
        )

    def _profile_from_response(self, data: Any, action: str) -> Dict[str, Any]:
        """Check that a profile payload is a JSON object carrying a user id."""
        if not isinstance(data, dict):
            logger.error(f"{self.name}: expected a JSON object while trying to {action}, got {type(data).__name__}.")
            raise unexpected_error(f"Failed to {action}: unexpected response format")
        if data.get("id") in (None, ""):
            logger.error(f"{self.name}: profile response without an id.")
            raise unexpected_error(f"Failed to {action}: response has no user id")
        return data
