# lucia_toolkit/auth/endpoints.py
import logging
from typing import Optional

from fastapi import APIRouter, Path, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..errors import bad_request, unauthorized
from ..settings import Settings, settings as toolkit_settings
from ..utils.security import constant_time_equals
from .dependencies import AuthServiceDep
from .middleware import clear_session_cookie, get_session, set_session_cookie

logger = logging.getLogger(__name__)
auth_router = APIRouter()


def _app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or toolkit_settings


@auth_router.get("/login/{provider}")
async def login(
    request: Request,
    auth_service: AuthServiceDep,
    provider: str = Path(..., description="Registered provider name, e.g. 'google' or 'github'")
):
    """Redirect the browser to the provider's consent page."""
    app_settings = _app_settings(request)
    auth_url, state = auth_service.get_auth_url(provider)

    response = RedirectResponse(url=auth_url, status_code=302)
    response.set_cookie(
        key=app_settings.oauth_state_cookie_name,
        value=state,
        max_age=app_settings.oauth_state_max_age_seconds,
        path="/",
        httponly=True,
        secure=app_settings.cookie_secure,
        samesite="lax",
    )
    logger.info(f"Login started with provider '{provider}'.")
    return response


@auth_router.get("/login/{provider}/callback")
async def login_callback(
    request: Request,
    auth_service: AuthServiceDep,
    provider: str = Path(...),
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None)
):
    """Handle the provider redirect: verify state, complete the login and set the session cookie."""
    app_settings = _app_settings(request)

    stored_state = request.cookies.get(app_settings.oauth_state_cookie_name)
    if not stored_state or not state or not constant_time_equals(stored_state, state):
        logger.warning(f"OAuth callback for '{provider}' rejected: state mismatch.")
        raise unauthorized("Invalid state")

    if error:
        logger.warning(f"Provider '{provider}' returned error '{error}': {error_description}")
        raise unauthorized(f"Provider returned error: {error_description or error}")

    if not code:
        raise bad_request("Missing code")

    session = await auth_service.handle_callback(provider, code)

    response = RedirectResponse(url=app_settings.login_redirect_path, status_code=302)
    response.delete_cookie(
        key=app_settings.oauth_state_cookie_name,
        path="/",
        httponly=True,
        secure=app_settings.cookie_secure,
        samesite="lax",
    )
    set_session_cookie(
        response,
        session,
        cookie_name=app_settings.session_cookie_name,
        secure=app_settings.cookie_secure
    )
    return response


@auth_router.post("/logout")
async def logout(request: Request, auth_service: AuthServiceDep):
    app_settings = _app_settings(request)
    session = get_session(request)
    if session is not None:
        await auth_service.logout(session.id)

    response = JSONResponse(content={"message": "Logged out successfully"})
    clear_session_cookie(
        response,
        cookie_name=app_settings.session_cookie_name,
        secure=app_settings.cookie_secure
    )
    return response
