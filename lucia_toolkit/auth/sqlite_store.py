# lucia_toolkit/auth/sqlite_store.py
import sqlite3
import logging
from datetime import datetime
from typing import Optional

from ..errors import bad_request, conflict, database_error, not_found
from ..storage.sqlite_base import get_sqlite_db_connection
from ..utils.security import generate_id
from .models import Session, User, UserInfo
from .storage_interfaces import AbstractSessionStore, AbstractUserStore

logger = logging.getLogger(__name__)


class _SQLiteStoreMixin:
    """Query helpers shared by the SQLite user and session stores."""

    def __init__(self, db_path: Optional[str] = None):
        # None falls back to settings.sqlite_db_path
        self._db_path = db_path

    async def _execute_query(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """
        Execute a write query and commit it, rolling back on failure.

        Raises:
            sqlite3.Error: If the database operation fails
        """
        conn = await get_sqlite_db_connection(self._db_path)
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        return cursor

    async def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        conn = await get_sqlite_db_connection(self._db_path)
        cursor = conn.cursor()
        cursor.execute(query, params)
        return cursor.fetchone()


def _is_foreign_key_violation(error: sqlite3.IntegrityError) -> bool:
    return "FOREIGN KEY" in str(error).upper()


class SQLiteUserStore(_SQLiteStoreMixin, AbstractUserStore[User]):
    """SQLite implementation of the user store."""

    async def initialize(self) -> None:
        await get_sqlite_db_connection(self._db_path)
        logger.info("SQLiteUserStore initialized.")

    async def teardown(self) -> None:
        logger.info("SQLiteUserStore teardown.")

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            provider=row["provider"],
            provider_id=row["provider_id"],
            profile_picture=row["profile_picture"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def get_user_by_provider_id(self, provider: str, provider_id: str) -> User:
        query = "SELECT * FROM auth_users WHERE provider = ? AND provider_id = ?"
        try:
            row = await self._fetchone(query, (provider, provider_id))
        except sqlite3.Error as e:
            logger.error(f"SQLite error looking up user {provider}:{provider_id}: {e}", exc_info=True)
            raise database_error(f"Failed to get user: {e}") from e
        if row is None:
            raise not_found("User not found")
        return self._row_to_user(row)

    async def get_user_by_id(self, user_id: str) -> User:
        try:
            row = await self._fetchone("SELECT * FROM auth_users WHERE id = ?", (user_id,))
        except sqlite3.Error as e:
            logger.error(f"SQLite error looking up user '{user_id}': {e}", exc_info=True)
            raise database_error(f"Failed to get user: {e}") from e
        if row is None:
            raise not_found("User not found")
        return self._row_to_user(row)

    async def create_user(self, user_info: UserInfo) -> User:
        user = User(
            id=generate_id(),
            email=user_info.email,
            name=user_info.name,
            provider=user_info.provider_name,
            provider_id=user_info.external_id,
            profile_picture=user_info.profile_picture,
        )
        query = '''
            INSERT INTO auth_users (id, email, name, provider, provider_id, profile_picture, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        '''
        params = (
            user.id,
            user.email,
            user.name,
            user.provider,
            user.provider_id,
            user.profile_picture,
            user.created_at.isoformat(),
        )
        try:
            await self._execute_query(query, params)
        except sqlite3.IntegrityError as e:
            logger.warning(f"User {user.provider}:{user.provider_id} already exists: {e}")
            raise conflict("User already exists") from e
        except sqlite3.Error as e:
            logger.error(f"SQLite error creating user: {e}", exc_info=True)
            raise database_error(f"Failed to create user: {e}") from e
        logger.debug(f"Created user '{user.id}' for {user.provider}:{user.provider_id}.")
        return user


class SQLiteSessionStore(_SQLiteStoreMixin, AbstractSessionStore):
    """SQLite implementation of the session store."""

    async def initialize(self) -> None:
        await get_sqlite_db_connection(self._db_path)
        logger.info("SQLiteSessionStore initialized.")

    async def teardown(self) -> None:
        logger.info("SQLiteSessionStore teardown.")

    async def create_session(self, session: Session) -> None:
        query = "INSERT INTO auth_sessions (id, user_id, expires_at) VALUES (?, ?, ?)"
        try:
            await self._execute_query(query, (session.id, session.user_id, session.expires_at))
        except sqlite3.IntegrityError as e:
            if _is_foreign_key_violation(e):
                logger.warning(f"Session '{session.id}' references unknown user '{session.user_id}'.")
                raise bad_request("Invalid user ID") from e
            logger.warning(f"Session '{session.id}' already exists.")
            raise conflict("Session already exists") from e
        except sqlite3.Error as e:
            logger.error(f"SQLite error creating session: {e}", exc_info=True)
            raise database_error(f"Failed to create session: {e}") from e

    async def get_session(self, session_id: str) -> Session:
        query = "SELECT id, user_id, expires_at FROM auth_sessions WHERE id = ?"
        try:
            row = await self._fetchone(query, (session_id,))
        except sqlite3.Error as e:
            logger.error(f"SQLite error reading session '{session_id}': {e}", exc_info=True)
            raise database_error(f"Failed to get session: {e}") from e
        if row is None:
            raise not_found("Session not found")

        session = Session(id=row["id"], user_id=row["user_id"], expires_at=row["expires_at"])
        if session.is_expired():
            try:
                await self._execute_query("DELETE FROM auth_sessions WHERE id = ?", (session_id,))
                logger.info(f"Session '{session_id}' expired and was removed.")
            except sqlite3.Error as e:
                logger.warning(f"Could not remove expired session '{session_id}': {e}")
            raise not_found("Session expired")
        return session

    async def delete_session(self, session_id: str) -> None:
        try:
            cursor = await self._execute_query("DELETE FROM auth_sessions WHERE id = ?", (session_id,))
        except sqlite3.Error as e:
            logger.error(f"SQLite error deleting session '{session_id}': {e}", exc_info=True)
            raise database_error(f"Failed to delete session: {e}") from e
        if cursor.rowcount == 0:
            raise not_found("Session not found")
