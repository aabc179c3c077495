# lucia_toolkit/auth/storage.py
import logging
from typing import Optional

from ..settings import Settings, settings as toolkit_settings
from ..storage.sqlite_base import close_sqlite_db_connection
from .memory_store import InMemorySessionStore, InMemoryUserStore
from .redis_store import RedisSessionStore
from .sqlite_store import SQLiteSessionStore, SQLiteUserStore
from .storage_interfaces import AbstractSessionStore, AbstractUserStore

logger = logging.getLogger(__name__)

_user_store_instance: Optional[AbstractUserStore] = None
_session_store_instance: Optional[AbstractSessionStore] = None


def validate_backends(app_settings: Settings) -> None:
    """
    Reject backend combinations that cannot work together.

    SQLite sessions reference `auth_users` through a foreign key, so they
    require users to live in the same SQLite database.
    """
    session_backend = app_settings.effective_session_backend
    if session_backend == "sqlite" and app_settings.storage_backend != "sqlite":
        raise ValueError(
            f"session_backend 'sqlite' requires storage_backend 'sqlite', "
            f"got '{app_settings.storage_backend}'"
        )


async def get_user_store(app_settings: Optional[Settings] = None) -> AbstractUserStore:
    """
    Return the process-wide user store for the configured storage backend,
    creating and initializing it on first use.
    """
    global _user_store_instance

    if _user_store_instance is None:
        app_settings = app_settings or toolkit_settings
        validate_backends(app_settings)
        backend = app_settings.storage_backend
        if backend == "sqlite":
            logger.info("Using SQLiteUserStore for users.")
            store: AbstractUserStore = SQLiteUserStore(db_path=app_settings.sqlite_db_path)
        elif backend == "memory":
            logger.info("Using InMemoryUserStore for users.")
            store = InMemoryUserStore()
        else:
            raise ValueError(f"Unsupported storage_backend for users: {backend}")
        await store.initialize()
        _user_store_instance = store

    return _user_store_instance


async def get_session_store(app_settings: Optional[Settings] = None) -> AbstractSessionStore:
    """
    Return the process-wide session store. `session_backend` overrides the
    shared storage backend and additionally accepts "redis".
    """
    global _session_store_instance

    if _session_store_instance is None:
        app_settings = app_settings or toolkit_settings
        validate_backends(app_settings)
        backend = app_settings.effective_session_backend
        if backend == "sqlite":
            logger.info("Using SQLiteSessionStore for sessions.")
            store: AbstractSessionStore = SQLiteSessionStore(db_path=app_settings.sqlite_db_path)
        elif backend == "memory":
            logger.info("Using InMemorySessionStore for sessions.")
            store = InMemorySessionStore()
        elif backend == "redis":
            logger.info("Using RedisSessionStore for sessions.")
            store = RedisSessionStore(app_settings=app_settings)
        else:
            raise ValueError(f"Unsupported session_backend: {backend}")
        await store.initialize()
        _session_store_instance = store

    return _session_store_instance


async def teardown_stores() -> None:
    """Tear down the store singletons and close the shared SQLite connection."""
    global _user_store_instance, _session_store_instance

    if _session_store_instance is not None:
        await _session_store_instance.teardown()
        _session_store_instance = None
    if _user_store_instance is not None:
        await _user_store_instance.teardown()
        _user_store_instance = None
    await close_sqlite_db_connection()
