import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lucia_toolkit import errors
from lucia_toolkit.errors import (
    ApiError,
    ApiErrorKind,
    AuthError,
    AuthErrorKind,
    auth_error,
    register_exception_handlers,
    status_code_for,
)


@pytest.mark.parametrize(
    "kind, expected",
    [
        (ApiErrorKind.NOT_FOUND, 404),
        (ApiErrorKind.BAD_REQUEST, 400),
        (ApiErrorKind.FORBIDDEN, 403),
        (ApiErrorKind.UNAUTHORIZED, 401),
        (ApiErrorKind.CONFLICT, 409),
        (ApiErrorKind.SERVICE_UNAVAILABLE, 503),
        (ApiErrorKind.DATABASE, 500),
        (ApiErrorKind.PARSE, 500),
        (ApiErrorKind.UNEXPECTED, 500),
        (AuthErrorKind.USER_SESSION_NOT_FOUND, 404),
        (AuthErrorKind.INVALID_SESSION_ID, 400),
        (AuthErrorKind.SESSION_EXPIRED, 401),
        (AuthErrorKind.INVALID_CREDENTIALS, 401),
        (AuthErrorKind.INVALID_TOKEN, 401),
        (AuthErrorKind.TOKEN_EXPIRED, 401),
        (AuthErrorKind.DUPLICATE_USER_ERROR, 409),
        (AuthErrorKind.UNKNOWN_PROVIDER, 500),
        (AuthErrorKind.SESSION_CREATION_FAILED, 500),
    ],
)
def test_status_code_table(kind, expected):
    assert status_code_for(kind) == expected


class TestFactoriesAndPredicates:
    def test_factory_sets_kind_message_and_status(self):
        err = errors.not_found("User not found")
        assert isinstance(err, ApiError)
        assert err.kind == ApiErrorKind.NOT_FOUND
        assert err.message == "User not found"
        assert err.status_code == 404
        assert str(err) == "NotFound: User not found"

    def test_predicates_match_only_their_kind(self):
        err = errors.conflict("Session already exists")
        assert errors.is_conflict(err)
        assert not errors.is_not_found(err)
        assert not errors.is_auth_error(err)
        assert err.is_kind(ApiErrorKind.CONFLICT)

    def test_predicates_reject_untagged_exceptions(self):
        assert not errors.is_not_found(ValueError("nope"))
        assert not errors.is_auth_error(RuntimeError("nope"))

    def test_database_predicate_covers_both_families(self):
        assert errors.is_database_error(errors.database_error("boom"))
        assert errors.is_database_error(auth_error(AuthErrorKind.DATABASE_ERROR, "boom"))

    def test_auth_error_formatting_and_kind_filter(self):
        err = auth_error(AuthErrorKind.SESSION_EXPIRED, "Session expired")
        assert isinstance(err, AuthError)
        assert err.status_code == 401
        assert str(err) == "Auth error - SessionExpired: Session expired"
        assert errors.is_auth_error(err)
        assert errors.is_auth_error(err, AuthErrorKind.SESSION_EXPIRED)
        assert not errors.is_auth_error(err, AuthErrorKind.INVALID_TOKEN)

    def test_errors_are_raisable(self):
        with pytest.raises(ApiError) as exc_info:
            raise errors.service_unavailable("down")
        assert errors.is_service_unavailable(exc_info.value)


class TestExceptionHandlers:
    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/tagged")
        async def tagged():
            raise errors.forbidden("Not yours")

        @app.get("/auth")
        async def auth():
            raise auth_error(AuthErrorKind.DUPLICATE_USER_ERROR, "Duplicate user")

        @app.get("/untagged")
        async def untagged():
            raise RuntimeError("secret internal detail")

        return TestClient(app, raise_server_exceptions=False)

    def test_tagged_error_renders_message_and_status(self, client):
        response = client.get("/tagged")
        assert response.status_code == 403
        assert response.json() == {"error": "Not yours"}

    def test_auth_error_renders_mapped_status(self, client):
        response = client.get("/auth")
        assert response.status_code == 409
        assert response.json() == {"error": "Duplicate user"}

    def test_untagged_error_does_not_leak_details(self, client):
        response = client.get("/untagged")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}
        assert "secret" not in response.text
