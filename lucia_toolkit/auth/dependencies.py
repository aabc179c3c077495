# lucia_toolkit/auth/dependencies.py
import logging
from typing import Annotated

from fastapi import Depends, Request

from ..errors import service_unavailable, unauthorized
from .middleware import get_session
from .models import Session
from .service import AuthService

logger = logging.getLogger(__name__)


def get_auth_service(request: Request) -> AuthService:
    """Dependency provider for the AuthService built during application startup."""
    auth_service = getattr(request.app.state, "auth_service", None)
    if auth_service is None:
        logger.error("CRITICAL: AuthService not initialized on app.state.")
        raise service_unavailable("Authentication service unavailable")
    return auth_service


def require_auth(request: Request) -> Session:
    """Guard for routes that need a logged-in user."""
    session = get_session(request)
    if session is None:
        logger.debug(f"Unauthenticated request to {request.url.path} rejected.")
        raise unauthorized("Authentication required")
    return session


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
SessionDep = Annotated[Session, Depends(require_auth)]
