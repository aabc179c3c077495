# lucia_toolkit/auth/middleware.py
import logging
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from ..errors import ToolkitError
from ..settings import settings as toolkit_settings
from .models import Session

logger = logging.getLogger(__name__)


def get_session(request: Request) -> Optional[Session]:
    """Return the session resolved by SessionMiddleware for this request, if any."""
    return getattr(request.state, "session", None)


def set_session_cookie(
    response: Response,
    session: Session,
    cookie_name: Optional[str] = None,
    secure: Optional[bool] = None
) -> None:
    """Set the session cookie so that it expires together with the session."""
    response.set_cookie(
        key=cookie_name or toolkit_settings.session_cookie_name,
        value=session.id,
        max_age=max(session.seconds_remaining(), 0),
        expires=session.expires_at_datetime(),
        path="/",
        httponly=True,
        secure=toolkit_settings.cookie_secure if secure is None else secure,
        samesite="lax",
    )


def clear_session_cookie(
    response: Response,
    cookie_name: Optional[str] = None,
    secure: Optional[bool] = None
) -> None:
    response.delete_cookie(
        key=cookie_name or toolkit_settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=toolkit_settings.cookie_secure if secure is None else secure,
        samesite="lax",
    )


def _sets_cookie(response: Response, cookie_name: str) -> bool:
    prefix = f"{cookie_name}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session cookie into `request.state.session`.

    A cookie that cannot be resolved (unknown, expired or unreadable session)
    is cleared on the response and the request continues unauthenticated.
    Routes decide on their own whether a session is required.
    """

    def __init__(
        self,
        app: ASGIApp,
        cookie_name: Optional[str] = None,
        secure: Optional[bool] = None
    ):
        super().__init__(app)
        self.cookie_name = cookie_name or toolkit_settings.session_cookie_name
        self.secure = secure

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.session = None
        session_id = request.cookies.get(self.cookie_name)
        clear_cookie = False

        if session_id:
            auth_service = getattr(request.app.state, "auth_service", None)
            if auth_service is None:
                logger.error("SessionMiddleware: no AuthService on app.state, ignoring session cookie.")
            else:
                try:
                    request.state.session = await auth_service.get_session(session_id)
                except ToolkitError as e:
                    logger.info(f"SessionMiddleware: discarding session cookie ({e}).")
                    clear_cookie = True

        response = await call_next(request)

        # A route that issued a fresh session cookie keeps it
        if clear_cookie and not _sets_cookie(response, self.cookie_name):
            clear_session_cookie(response, cookie_name=self.cookie_name, secure=self.secure)
        return response
