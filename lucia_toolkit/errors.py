# lucia_toolkit/errors.py
import logging
from enum import Enum
from typing import Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiErrorKind(str, Enum):
    """Generic error kinds shared by every toolkit component."""
    PARSE = "ParseError"
    UNEXPECTED = "UnexpectedError"
    DATABASE = "DatabaseError"
    NOT_FOUND = "NotFound"
    BAD_REQUEST = "BadRequest"
    FORBIDDEN = "Forbidden"
    UNAUTHORIZED = "Unauthorized"
    CONFLICT = "Conflict"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"


class AuthErrorKind(str, Enum):
    """Error kinds raised by the authentication and session layer."""
    UNKNOWN_PROVIDER = "UnknownProvider"
    TOKEN_EXCHANGE_ERROR = "TokenExchangeError"
    USER_INFO_ERROR = "UserInfoError"
    USER_CREATION_FAILED = "UserCreationFailed"
    DATABASE_ERROR = "DatabaseError"
    SESSION_CREATION_FAILED = "SessionCreationFailed"
    SESSION_DELETION_FAILED = "SessionDeletionFailed"
    USER_SESSION_NOT_FOUND = "UserSessionNotFound"
    INVALID_SESSION_ID = "InvalidSessionId"
    SESSION_EXPIRED = "SessionExpired"
    INVALID_CREDENTIALS = "InvalidCredentials"
    INVALID_TOKEN = "InvalidToken"
    TOKEN_EXPIRED = "TokenExpired"
    DUPLICATE_USER_ERROR = "DuplicateUserError"


ErrorKind = Union[ApiErrorKind, AuthErrorKind]

# Kinds missing from these tables map to 500
API_ERROR_STATUS_CODES: Dict[ApiErrorKind, int] = {
    ApiErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ApiErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ApiErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ApiErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ApiErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ApiErrorKind.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

AUTH_ERROR_STATUS_CODES: Dict[AuthErrorKind, int] = {
    AuthErrorKind.USER_SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorKind.INVALID_SESSION_ID: status.HTTP_400_BAD_REQUEST,
    AuthErrorKind.SESSION_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.DUPLICATE_USER_ERROR: status.HTTP_409_CONFLICT,
}

INTERNAL_SERVER_ERROR_MESSAGE = "Internal Server Error"


def status_code_for(kind: ErrorKind) -> int:
    """Translate an error kind into its HTTP status code."""
    if isinstance(kind, AuthErrorKind):
        return AUTH_ERROR_STATUS_CODES.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return API_ERROR_STATUS_CODES.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ToolkitError(HTTPException):
    """
    Base class for tagged toolkit errors.

    Carries a semantic kind for programmatic inspection and the HTTP status
    code derived from it, so the same value can be raised deep inside a store
    and rendered unchanged at the HTTP boundary.
    """

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(status_code=status_code_for(kind), detail=message)

    def is_kind(self, kind: ErrorKind) -> bool:
        return self.kind == kind

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ApiError(ToolkitError):
    """Generic API error (not found, conflict, database failure...)."""

    def __init__(self, kind: ApiErrorKind, message: str):
        super().__init__(kind, message)


class AuthError(ToolkitError):
    """Error raised by the authentication service and its collaborators."""

    def __init__(self, kind: AuthErrorKind, message: str):
        super().__init__(kind, message)

    def __str__(self) -> str:
        return f"Auth error - {self.kind.value}: {self.message}"


# --- Factories ---

def parse_error(message: str) -> ApiError:
    return ApiError(ApiErrorKind.PARSE, message)


def unexpected_error(message: str) -> ApiError:
    return ApiError(ApiErrorKind.UNEXPECTED, message)


def database_error(message: str) -> ApiError:
    return ApiError(ApiErrorKind.DATABASE, message)


def not_found(message: str) -> ApiError:
    return ApiError(ApiErrorKind.NOT_FOUND, message)


def bad_request(message: str) -> ApiError:
    return ApiError(ApiErrorKind.BAD_REQUEST, message)


def forbidden(message: str) -> ApiError:
    return ApiError(ApiErrorKind.FORBIDDEN, message)


def unauthorized(message: str) -> ApiError:
    return ApiError(ApiErrorKind.UNAUTHORIZED, message)


def conflict(message: str) -> ApiError:
    return ApiError(ApiErrorKind.CONFLICT, message)


def service_unavailable(message: str) -> ApiError:
    return ApiError(ApiErrorKind.SERVICE_UNAVAILABLE, message)


def auth_error(kind: AuthErrorKind, message: str) -> AuthError:
    return AuthError(kind, message)


# --- Predicates ---

def _has_kind(exc: BaseException, kind: ErrorKind) -> bool:
    return isinstance(exc, ToolkitError) and exc.kind == kind


def is_parse_error(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.PARSE)


def is_unexpected_error(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.UNEXPECTED)


def is_database_error(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.DATABASE) or _has_kind(exc, AuthErrorKind.DATABASE_ERROR)


def is_not_found(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.NOT_FOUND)


def is_bad_request(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.BAD_REQUEST)


def is_forbidden(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.FORBIDDEN)


def is_unauthorized(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.UNAUTHORIZED)


def is_conflict(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.CONFLICT)


def is_service_unavailable(exc: BaseException) -> bool:
    return _has_kind(exc, ApiErrorKind.SERVICE_UNAVAILABLE)


def is_auth_error(exc: BaseException, kind: Optional[AuthErrorKind] = None) -> bool:
    """True for any AuthError, or only for the given kind when one is passed."""
    if not isinstance(exc, AuthError):
        return False
    return kind is None or exc.kind == kind


# --- HTTP boundary ---

async def toolkit_error_handler(request: Request, exc: ToolkitError) -> JSONResponse:
    """Render a tagged error as {"error": message} with its mapped status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed with {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} ({exc.kind.value})")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Untagged errors never leak details to the client."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_SERVER_ERROR_MESSAGE}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ToolkitError, toolkit_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
