import pytest
from fastapi.testclient import TestClient

from lucia_toolkit.settings import Settings
from lucia_toolkit.main import create_app
from lucia_toolkit.auth.memory_store import InMemorySessionStore, InMemoryUserStore


@pytest.fixture
def app_settings():
    return Settings(cookie_secure=False, storage_backend="memory")


@pytest.fixture
def client(app_settings, auth_service):
    app = create_app(settings=app_settings, auth_service=auth_service)
    with TestClient(app) as test_client:
        yield test_client


def _login(client) -> None:
    start = client.get("/login/fake", follow_redirects=False)
    state = client.cookies.get("oauth_state")
    client.get(f"/login/fake/callback?code=the-code&state={state}", follow_redirects=False)
    assert start.status_code == 302


class TestLoginFlow:
    def test_login_redirects_to_provider_with_state_cookie(self, client):
        response = client.get("/login/fake", follow_redirects=False)

        assert response.status_code == 302
        state = client.cookies.get("oauth_state")
        assert state
        assert response.headers["location"] == f"https://provider.example/authorize?state={state}"
        assert "httponly" in response.headers["set-cookie"].lower()

    def test_callback_sets_session_cookie_and_redirects(self, client, fake_provider):
        client.get("/login/fake", follow_redirects=False)
        state = client.cookies.get("oauth_state")

        response = client.get(f"/login/fake/callback?code=the-code&state={state}", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/api/profile"
        assert fake_provider.exchanged_codes == ["the-code"]
        assert client.cookies.get("auth_session")
        assert client.cookies.get("oauth_state") is None

    def test_profile_and_user_routes_after_login(self, client):
        _login(client)

        profile = client.get("/api/profile")
        assert profile.status_code == 200
        body = profile.json()
        assert body["session_id"] == client.cookies.get("auth_session")

        user = client.get("/api/user")
        assert user.status_code == 200
        assert user.json()["id"] == body["user_id"]
        assert user.json()["email"] == "a@b.com"

    def test_state_mismatch_is_rejected(self, client, fake_provider):
        client.get("/login/fake", follow_redirects=False)

        response = client.get("/login/fake/callback?code=the-code&state=forged", follow_redirects=False)

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid state"}
        assert fake_provider.exchanged_codes == []

    def test_missing_state_cookie_is_rejected(self, client):
        response = client.get("/login/fake/callback?code=c&state=s", follow_redirects=False)
        assert response.status_code == 401

    def test_missing_code(self, client):
        client.get("/login/fake", follow_redirects=False)
        state = client.cookies.get("oauth_state")

        response = client.get(f"/login/fake/callback?state={state}", follow_redirects=False)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing code"}

    def test_provider_error_parameter(self, client):
        client.get("/login/fake", follow_redirects=False)
        state = client.cookies.get("oauth_state")

        response = client.get(f"/login/fake/callback?error=access_denied&state={state}", follow_redirects=False)

        assert response.status_code == 401

    def test_failed_exchange_surfaces_as_error_body(self, client, failing_exchange):
        client.get("/login/fake", follow_redirects=False)
        state = client.cookies.get("oauth_state")

        response = client.get(f"/login/fake/callback?code=bad&state={state}", follow_redirects=False)

        assert response.status_code == 500
        assert response.json()["error"].startswith("Failed to exchange code")


class TestSessionGuard:
    def test_public_route_without_cookie(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "set-cookie" not in response.headers

    def test_protected_route_requires_session(self, client):
        response = client.get("/api/profile")
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_stale_cookie_is_cleared_and_request_continues(self, client):
        client.cookies.set("auth_session", "bogus")

        response = client.get("/")

        assert response.status_code == 200
        cookie_header = response.headers["set-cookie"]
        assert cookie_header.startswith("auth_session=")
        assert "Max-Age=0" in cookie_header

    def test_logout(self, client):
        _login(client)
        assert client.get("/api/profile").status_code == 200

        response = client.post("/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        assert client.cookies.get("auth_session") is None
        assert client.get("/api/profile").status_code == 401

    def test_logout_without_session_is_harmless(self, client):
        response = client.post("/logout")
        assert response.status_code == 200


class TestLifespan:
    def test_builds_stores_and_registers_configured_providers(self):
        app_settings = Settings(
            storage_backend="memory",
            cookie_secure=False,
            google_client_id="google-client",
            google_client_secret="google-secret",
            google_redirect_uri="http://testserver/login/google/callback",
        )

        with TestClient(create_app(settings=app_settings)) as client:
            service = client.app.state.auth_service
            assert service.provider_names == ("google",)
            assert isinstance(service.user_store, InMemoryUserStore)
            assert isinstance(service.session_store, InMemorySessionStore)

            response = client.get("/login/google", follow_redirects=False)
            assert response.status_code == 302
            assert response.headers["location"].startswith("https://accounts.google.com/o/oauth2/auth?")

            unknown = client.get("/login/github", follow_redirects=False)
            assert unknown.status_code == 500
            assert unknown.json() == {"error": "Unknown provider: github"}

    def test_sqlite_stores_use_the_app_database_path(self, tmp_path):
        db_file = tmp_path / "app" / "auth.sqlite3"
        app_settings = Settings(storage_backend="sqlite", sqlite_db_path=str(db_file), cookie_secure=False)

        with TestClient(create_app(settings=app_settings)) as client:
            assert client.get("/").status_code == 200

        assert db_file.exists()

    def test_sqlite_sessions_without_sqlite_users_fail_startup(self):
        app_settings = Settings(storage_backend="memory", session_backend="sqlite", cookie_secure=False)

        with pytest.raises(ValueError, match="requires storage_backend 'sqlite'"):
            with TestClient(create_app(settings=app_settings)):
                pass
