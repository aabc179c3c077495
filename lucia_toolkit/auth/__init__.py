"""
OAuth login and session management.

This module wires external OAuth providers to user and session stores and
exposes the pieces needed to protect FastAPI routes with a session cookie.
"""

from .models import OAuthToken, UserInfo, User, Session, AuthUser
from .providers import AbstractOAuthProvider, GoogleProvider, GitHubProvider
from .storage_interfaces import AbstractUserStore, AbstractSessionStore
from .memory_store import InMemoryUserStore, InMemorySessionStore
from .sqlite_store import SQLiteUserStore, SQLiteSessionStore
from .redis_store import RedisSessionStore
from .storage import get_user_store, get_session_store, teardown_stores
from .service import AuthService
from .middleware import SessionMiddleware, get_session, set_session_cookie, clear_session_cookie
from .dependencies import get_auth_service, require_auth
from .endpoints import auth_router

__all__ = [
    "OAuthToken",
    "UserInfo",
    "User",
    "Session",
    "AuthUser",
    "AbstractOAuthProvider",
    "GoogleProvider",
    "GitHubProvider",
    "AbstractUserStore",
    "AbstractSessionStore",
    "InMemoryUserStore",
    "InMemorySessionStore",
    "SQLiteUserStore",
    "SQLiteSessionStore",
    "RedisSessionStore",
    "get_user_store",
    "get_session_store",
    "teardown_stores",
    "AuthService",
    "SessionMiddleware",
    "get_session",
    "set_session_cookie",
    "clear_session_cookie",
    "get_auth_service",
    "require_auth",
    "auth_router",
]
