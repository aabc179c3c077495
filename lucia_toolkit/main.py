# lucia_toolkit/main.py
import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

import httpx
from fastapi import FastAPI

from .settings import Settings, settings as toolkit_settings
from .errors import register_exception_handlers
from .auth.dependencies import AuthServiceDep, SessionDep
from .auth.endpoints import auth_router
from .auth.middleware import SessionMiddleware
from .auth.providers import AbstractOAuthProvider, GitHubProvider, GoogleProvider
from .auth.service import AuthService
from .auth.storage import get_session_store, get_user_store, teardown_stores

if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level="DEBUG" if toolkit_settings.debug_mode else "INFO",
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

logger = logging.getLogger(__name__)

PROVIDER_HTTP_TIMEOUT_SECONDS = 30.0


def build_providers(
    app_settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None
) -> Dict[str, AbstractOAuthProvider]:
    """Instantiate every provider whose client id is configured."""
    providers: Dict[str, AbstractOAuthProvider] = {}
    if app_settings.google_client_id:
        providers[GoogleProvider.name] = GoogleProvider(
            client_id=app_settings.google_client_id,
            client_secret=app_settings.google_client_secret or "",
            redirect_uri=app_settings.google_redirect_uri or "",
            http_client=http_client,
        )
    if app_settings.github_client_id:
        providers[GitHubProvider.name] = GitHubProvider(
            client_id=app_settings.github_client_id,
            client_secret=app_settings.github_client_secret or "",
            redirect_uri=app_settings.github_redirect_uri or "",
            http_client=http_client,
        )
    if not providers:
        logger.warning("No OAuth provider configured. Set GOOGLE_CLIENT_ID or GITHUB_CLIENT_ID to enable logins.")
    return providers


def create_app(
    settings: Optional[Settings] = None,
    auth_service: Optional[AuthService] = None
) -> FastAPI:
    """
    Build the example application.

    When no AuthService is injected, the lifespan builds one from the
    configured stores and providers and tears it down at shutdown.
    """
    app_settings = settings or toolkit_settings

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        logger.info("Application startup initiated.")
        app_instance.state.settings = app_settings

        if auth_service is not None:
            app_instance.state.auth_service = auth_service
            logger.info("Using injected AuthService.")
            yield
            logger.info("Application shutdown complete.")
            return

        http_client = httpx.AsyncClient(timeout=PROVIDER_HTTP_TIMEOUT_SECONDS)
        try:
            user_store = await get_user_store(app_settings)
            session_store = await get_session_store(app_settings)
            app_instance.state.auth_service = AuthService(
                user_store=user_store,
                session_store=session_store,
                providers=build_providers(app_settings, http_client),
                session_ttl_seconds=app_settings.session_ttl_seconds,
            )
            logger.info("AuthService initialized.")
            yield
        finally:
            logger.info("Application shutdown initiated.")
            await teardown_stores()
            await http_client.aclose()
            logger.info("Application shutdown complete.")

    app = FastAPI(
        title=app_settings.app_name,
        debug=app_settings.debug_mode,
        lifespan=lifespan
    )
    register_exception_handlers(app)
    app.add_middleware(
        SessionMiddleware,
        cookie_name=app_settings.session_cookie_name,
        secure=app_settings.cookie_secure
    )
    app.include_router(auth_router, tags=["Authentication"])

    @app.get("/", tags=["General"])
    async def root():
        return {"message": f"Welcome to {app_settings.app_name}"}

    @app.get("/api/profile", tags=["Protected"])
    async def profile(session: SessionDep):
        return {
            "message": "Protected route",
            "user_id": session.user_id,
            "session_id": session.id,
        }

    @app.get("/api/user", tags=["Protected"])
    async def current_user(session: SessionDep, service: AuthServiceDep):
        user = await service.user_store.get_user_by_id(session.user_id)
        return user.model_dump(mode="json")

    return app


app = create_app()
