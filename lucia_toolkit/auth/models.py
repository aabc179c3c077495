# lucia_toolkit/auth/models.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Protocol, TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .providers.base import AbstractOAuthProvider

logger = logging.getLogger(__name__)

# Refresh this many seconds before the provider-reported expiry
TOKEN_REFRESH_BUFFER_SECONDS = 300
DEFAULT_SESSION_TTL_SECONDS = 3600 * 24


def _now() -> int:
    return int(time.time())


class OAuthToken(BaseModel):
    """Access/refresh token pair obtained from an external OAuth provider."""
    access_token: str
    refresh_token: str = ""
    expires_at: int = Field(
        default=0,
        description="Unix timestamp (seconds) of expiry. 0 means the token never expires."
    )

    def needs_refresh(self, now: Optional[float] = None) -> bool:
        if self.expires_at == 0:
            return False
        current = _now() if now is None else now
        return current + TOKEN_REFRESH_BUFFER_SECONDS >= self.expires_at

    async def refresh_if_needed(self, provider: "AbstractOAuthProvider") -> bool:
        """
        Refreshes the token in place through the provider when it is about to expire.

        The existing refresh token is kept when the provider does not issue a new one.
        Provider errors propagate unchanged.

        Returns:
            True if a refresh happened, False otherwise.
        """
        if not self.needs_refresh() or not self.refresh_token:
            return False

        logger.debug(f"Refreshing OAuth token through provider '{provider.name}'.")
        new_token = await provider.refresh_token(self.refresh_token)
        self.access_token = new_token.access_token
        self.expires_at = new_token.expires_at
        if new_token.refresh_token:
            self.refresh_token = new_token.refresh_token
        return True


class UserInfo(BaseModel):
    """Normalized profile returned by a provider; consumed once to find or create a User."""
    external_id: str
    email: str = ""
    name: str = ""
    provider_name: str
    profile_picture: Optional[str] = None
    # The token used for the profile request, possibly refreshed on the way
    token: Optional[OAuthToken] = None


class AuthUser(Protocol):
    """Anything a user store hands back must expose a string identifier."""
    id: str


class User(BaseModel):
    """Default application user record created on first login through a provider."""
    id: str
    email: str = ""
    name: str = ""
    provider: str
    provider_id: str
    profile_picture: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Session(BaseModel):
    """Server-issued, time-bounded proof of a successful login."""
    id: str
    user_id: str
    expires_at: int = Field(description="Unix timestamp (seconds) after which the session is invalid.")

    def is_expired(self, now: Optional[float] = None) -> bool:
        current = _now() if now is None else now
        return self.expires_at < current

    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)

    def seconds_remaining(self, now: Optional[float] = None) -> int:
        current = _now() if now is None else now
        return int(self.expires_at - current)
