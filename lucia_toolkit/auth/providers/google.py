# lucia_toolkit/auth/providers/google.py
import logging
from urllib.parse import urlencode

from ..models import OAuthToken, UserInfo
from .base import AbstractOAuthProvider

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


class GoogleProvider(AbstractOAuthProvider):
    """Google OAuth2 provider."""

    name = "google"

    def get_auth_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "state": state,
            # offline access makes Google issue a refresh token
            "access_type": "offline",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthToken:
        data = await self._request_json(
            "POST",
            GOOGLE_TOKEN_URL,
            "exchange code for token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        token = self._token_from_response(data, "exchange code for token")
        logger.debug(f"Google code exchange succeeded. Token expires at {token.expires_at}.")
        return token

    async def refresh_token(self, refresh_token: str) -> OAuthToken:
        data = await self._request_json(
            "POST",
            GOOGLE_TOKEN_URL,
            "refresh token",
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        return self._token_from_response(data, "refresh token")

    async def _fetch_user_info(self, token: OAuthToken) -> UserInfo:
        data = await self._request_json(
            "GET",
            GOOGLE_USERINFO_URL,
            "get user info",
            headers={"Authorization": f"Bearer {token.access_token}"},
        )
        data = self._profile_from_response(data, "get user info")
        return UserInfo(
            external_id=str(data.get("id", "")),
            email=data.get("email") or "",
            name=data.get("name") or "",
            provider_name=self.name,
            profile_picture=data.get("picture"),
        )
