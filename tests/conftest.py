import time
from typing import Dict, List, Optional

import pytest

from lucia_toolkit.errors import unauthorized
from lucia_toolkit.settings import settings
from lucia_toolkit.storage.sqlite_base import close_sqlite_db_connection
from lucia_toolkit.auth.models import OAuthToken, UserInfo
from lucia_toolkit.auth.providers.base import AbstractOAuthProvider
from lucia_toolkit.auth.memory_store import InMemorySessionStore, InMemoryUserStore
from lucia_toolkit.auth.service import AuthService


class FakeProvider(AbstractOAuthProvider):
    """Provider double that records calls and returns canned data."""

    name = "fake"

    def __init__(self, user_info: Optional[UserInfo] = None, token: Optional[OAuthToken] = None):
        super().__init__("client-id", "client-secret", "http://testserver/login/fake/callback")
        self.user_info = user_info or UserInfo(
            external_id="42",
            email="a@b.com",
            name="A",
            provider_name=self.name,
        )
        self.token = token or OAuthToken(access_token="access-1", refresh_token="refresh-1")
        self.exchange_error: Optional[Exception] = None
        self.user_info_error: Optional[Exception] = None
        self.exchanged_codes: List[str] = []
        self.refresh_calls: List[str] = []

    def get_auth_url(self, state: str) -> str:
        return f"https://provider.example/authorize?state={state}"

    async def exchange_code(self, code: str) -> OAuthToken:
        self.exchanged_codes.append(code)
        if self.exchange_error is not None:
            raise self.exchange_error
        return self.token.model_copy()

    async def refresh_token(self, refresh_token: str) -> OAuthToken:
        self.refresh_calls.append(refresh_token)
        return OAuthToken(access_token="access-2", expires_at=int(time.time()) + 3600)

    async def _fetch_user_info(self, token: OAuthToken) -> UserInfo:
        if self.user_info_error is not None:
            raise self.user_info_error
        return self.user_info.model_copy()


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the session store."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.expirations: Dict[str, int] = {}
        self.closed = False

    async def ping(self):
        return True

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.data:
            return None
        self.data[key] = value.encode("utf-8") if isinstance(value, str) else value
        if ex is not None:
            self.expirations[key] = ex
        return True

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expirations.pop(key, None)
        return removed

    async def aclose(self):
        self.closed = True


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def auth_service(user_store, session_store, fake_provider):
    return AuthService(
        user_store=user_store,
        session_store=session_store,
        providers={fake_provider.name: fake_provider},
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Points the shared SQLite connection at a throwaway database file."""
    await close_sqlite_db_connection()
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "lucia_test.sqlite3"))
    yield
    await close_sqlite_db_connection()


@pytest.fixture
def failing_exchange(fake_provider):
    fake_provider.exchange_error = unauthorized("Failed to exchange code for token: status code 400")
    return fake_provider
