# lucia_toolkit/auth/providers/github.py
import logging
from typing import Optional
from urllib.parse import urlencode

from ...errors import ToolkitError
from ..models import OAuthToken, UserInfo
from .base import AbstractOAuthProvider

logger = logging.getLogger(__name__)

GITHUB_AUTH_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_USER_EMAILS_URL = "https://api.github.com/user/emails"
GITHUB_SCOPES = ["user:email"]

# GitHub App user tokens last 8 hours when the response carries no expires_in
GITHUB_DEFAULT_TOKEN_LIFETIME_SECONDS = 8 * 3600


class GitHubProvider(AbstractOAuthProvider):
    """
    GitHub OAuth provider.

    GitHub answers token requests with 200 even on failure, placing an
    "error" field in the body instead of an access token; such responses are
    reported as Unauthorized.
    """

    name = "github"

    def get_auth_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(GITHUB_SCOPES),
            "state": state,
        }
        return f"{GITHUB_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthToken:
        data = await self._request_json(
            "POST",
            GITHUB_TOKEN_URL,
            "exchange code for token",
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        return self._token_from_response(
            data,
            "exchange code for token",
            default_lifetime_seconds=GITHUB_DEFAULT_TOKEN_LIFETIME_SECONDS
        )

    async def refresh_token(self, refresh_token: str) -> OAuthToken:
        data = await self._request_json(
            "POST",
            GITHUB_TOKEN_URL,
            "refresh token",
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        return self._token_from_response(
            data,
            "refresh token",
            default_lifetime_seconds=GITHUB_DEFAULT_TOKEN_LIFETIME_SECONDS
        )

    async def _fetch_user_info(self, token: OAuthToken) -> UserInfo:
        headers = self._api_headers(token)
        data = await self._request_json("GET", GITHUB_USER_URL, "get user info", headers=headers)
        data = self._profile_from_response(data, "get user info")

        email = data.get("email") or ""
        if not email:
            email = await self._fetch_primary_email(token) or ""

        return UserInfo(
            external_id=str(data.get("id", "")),
            email=email,
            name=data.get("name") or data.get("login") or "",
            provider_name=self.name,
            profile_picture=data.get("avatar_url"),
        )

    async def _fetch_primary_email(self, token: OAuthToken) -> Optional[str]:
        """Best effort lookup of the primary verified address for users with a private email."""
        try:
            emails = await self._request_json(
                "GET",
                GITHUB_USER_EMAILS_URL,
                "get user emails",
                headers=self._api_headers(token)
            )
        except ToolkitError as e:
            logger.warning(f"Could not read GitHub user emails, continuing without one: {e}")
            return None

        if not isinstance(emails, list):
            return None
        for entry in emails:
            if isinstance(entry, dict) and entry.get("primary") and entry.get("verified"):
                return entry.get("email")
        return None

    @staticmethod
    def _api_headers(token: OAuthToken) -> dict:
        return {
            "Authorization": f"Bearer {token.access_token}",
            "Accept": "application/vnd.github+json",
        }
