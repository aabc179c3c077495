# lucia_toolkit/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..settings import settings

logger = logging.getLogger(__name__)

# One connection per application lifecycle
_db_connection: Optional[sqlite3.Connection] = None
_db_path: Optional[Path] = None


async def get_sqlite_db_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """
    Get or create the shared SQLite connection.

    The database directory is created if needed and the auth schema is
    initialized on first connection. Foreign key enforcement is switched on
    for the connection, since SQLite leaves it off by default.

    Args:
        db_path: Database file to open. Defaults to `settings.sqlite_db_path`.

    Returns:
        sqlite3.Connection: The database connection instance

    Raises:
        sqlite3.Error: If database connection fails
        ValueError: If a connection to a different database file is already open
    """
    global _db_connection, _db_path
    requested_path = Path(db_path or settings.sqlite_db_path).resolve()

    if _db_connection is not None:
        if db_path is not None and requested_path != _db_path:
            raise ValueError(
                f"SQLite connection already open for {_db_path}, cannot switch to {requested_path}."
            )
        return _db_connection

    connection: Optional[sqlite3.Connection] = None
    try:
        requested_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Attempting to connect to SQLite DB at: {requested_path}")

        # Shared across the event loop thread and the threadpool used by sync routes
        connection = sqlite3.connect(str(requested_path), check_same_thread=False)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")

        logger.info(f"Successfully connected to SQLite DB: {requested_path}")

        await init_sqlite_db(connection)
    except sqlite3.Error as e:
        logger.error(f"Error connecting to SQLite database at {requested_path}: {e}", exc_info=True)
        if connection is not None:
            connection.close()
        raise

    _db_connection = connection
    _db_path = requested_path
    return _db_connection


async def init_sqlite_db(conn: Optional[sqlite3.Connection] = None):
    """
    Create the user and session tables if they do not exist yet.

    Args:
        conn: Optional database connection. If None, uses the global connection.
    """
    db_conn = conn or await get_sqlite_db_connection()
    cursor = db_conn.cursor()

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS auth_users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL DEFAULT '',
        name TEXT NOT NULL DEFAULT '',
        provider TEXT NOT NULL,
        provider_id TEXT NOT NULL,
        profile_picture TEXT,
        created_at TEXT NOT NULL,
        UNIQUE (provider, provider_id)
    )
    ''')
    logger.info("Ensured 'auth_users' table exists.")

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS auth_sessions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES auth_users(id) ON DELETE CASCADE,
        expires_at INTEGER NOT NULL
    )
    ''')
    logger.info("Ensured 'auth_sessions' table exists.")

    cursor.execute('CREATE INDEX IF NOT EXISTS idx_auth_sessions_user_id ON auth_sessions (user_id)')

    db_conn.commit()
    logger.info("SQLite database schema initialized/verified.")


async def close_sqlite_db_connection():
    """Close the global SQLite connection on application shutdown."""
    global _db_connection, _db_path
    if _db_connection is not None:
        logger.info("Closing SQLite DB connection.")
        _db_connection.close()
        _db_connection = None
        _db_path = None
        logger.info("SQLite DB connection closed.")
