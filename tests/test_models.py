import time

import pytest

from lucia_toolkit.errors import ApiError, is_unauthorized, unauthorized
from lucia_toolkit.auth.models import OAuthToken, Session


class TestTokenRefresh:
    def test_zero_expiry_never_needs_refresh(self):
        assert not OAuthToken(access_token="a", expires_at=0).needs_refresh()

    def test_refresh_buffer_boundaries(self):
        now = int(time.time())
        assert not OAuthToken(access_token="a", expires_at=now + 301).needs_refresh(now=now)
        assert OAuthToken(access_token="a", expires_at=now + 299).needs_refresh(now=now)
        assert OAuthToken(access_token="a", expires_at=now + 300).needs_refresh(now=now)

    async def test_refresh_updates_token_in_place(self, fake_provider):
        token = OAuthToken(access_token="old", refresh_token="refresh-1", expires_at=int(time.time()) + 10)

        refreshed = await token.refresh_if_needed(fake_provider)

        assert refreshed is True
        assert fake_provider.refresh_calls == ["refresh-1"]
        assert token.access_token == "access-2"
        # provider issued no new refresh token, so the old one is kept
        assert token.refresh_token == "refresh-1"
        assert not token.needs_refresh()

    async def test_fresh_token_is_left_alone(self, fake_provider):
        token = OAuthToken(access_token="old", refresh_token="r", expires_at=int(time.time()) + 3600)
        assert await token.refresh_if_needed(fake_provider) is False
        assert fake_provider.refresh_calls == []
        assert token.access_token == "old"

    async def test_no_refresh_without_refresh_token(self, fake_provider):
        token = OAuthToken(access_token="old", expires_at=int(time.time()) - 10)
        assert await token.refresh_if_needed(fake_provider) is False
        assert fake_provider.refresh_calls == []

    async def test_provider_errors_propagate(self, fake_provider):
        async def failing_refresh(refresh_token):
            raise unauthorized("Failed to refresh token: status code 400")

        fake_provider.refresh_token = failing_refresh
        token = OAuthToken(access_token="old", refresh_token="r", expires_at=int(time.time()) + 10)

        with pytest.raises(ApiError) as exc_info:
            await token.refresh_if_needed(fake_provider)
        assert is_unauthorized(exc_info.value)
        assert token.access_token == "old"


def test_session_expiry_helpers():
    now = int(time.time())
    live = Session(id="s1", user_id="u1", expires_at=now + 60)
    dead = Session(id="s2", user_id="u1", expires_at=now - 1)

    assert not live.is_expired(now=now)
    assert dead.is_expired(now=now)
    # a session is still valid in its final second
    assert not Session(id="s3", user_id="u1", expires_at=now).is_expired(now=now)
    assert live.seconds_remaining(now=now) == 60
    assert int(live.expires_at_datetime().timestamp()) == now + 60
