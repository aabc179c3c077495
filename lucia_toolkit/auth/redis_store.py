# lucia_toolkit/auth/redis_store.py
import logging
from typing import Optional

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from ..errors import conflict, database_error, not_found
from ..settings import Settings, settings as toolkit_settings
from .models import Session
from .storage_interfaces import AbstractSessionStore

logger = logging.getLogger(__name__)


class RedisSessionStore(AbstractSessionStore):
    """
    Redis-based session store.

    Each session is a JSON document under `lucia:session:{id}` whose Redis TTL
    follows the session expiry, so Redis evicts dead sessions on its own. The
    expiry is still checked on read to cover the sub-second gap left by
    rounding the TTL.
    """

    KEY_PREFIX = "lucia:session:"

    def __init__(
        self,
        redis_client: Optional[aioredis.Redis] = None,
        app_settings: Optional[Settings] = None
    ):
        self._redis_client = redis_client
        self._settings = app_settings or toolkit_settings

    async def initialize(self) -> None:
        """Connect to Redis using the store settings unless a client was injected."""
        if self._redis_client:
            return

        connection_params = {
            "host": self._settings.redis_host,
            "port": self._settings.redis_port,
            "db": self._settings.redis_db,
            "decode_responses": False,
        }
        if self._settings.redis_password:
            connection_params["password"] = self._settings.redis_password

        logger.info(
            f"Connecting to Redis at {connection_params['host']}:"
            f"{connection_params['port']}, DB: {connection_params['db']}"
        )
        try:
            self._redis_client = aioredis.Redis(**connection_params)
            await self._redis_client.ping()
            logger.info("RedisSessionStore: Connected.")
        except RedisError as e:
            logger.error(f"RedisSessionStore: Connect failed: {e}", exc_info=True)
            self._redis_client = None
            raise database_error(f"Failed to connect to Redis: {e}") from e

    async def teardown(self) -> None:
        if self._redis_client:
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("RedisSessionStore: Closed.")

    async def _get_client(self) -> aioredis.Redis:
        if not self._redis_client:
            await self.initialize()
        return self._redis_client

    def _get_key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def create_session(self, session: Session) -> None:
        client = await self._get_client()
        # EX must be positive; an already expired session is still rejected on read
        ttl = max(session.seconds_remaining(), 1)
        try:
            created = await client.set(
                self._get_key(session.id),
                session.model_dump_json(),
                ex=ttl,
                nx=True
            )
        except RedisError as e:
            logger.error(f"Redis error creating session '{session.id}': {e}", exc_info=True)
            raise database_error(f"Failed to create session: {e}") from e
        if not created:
            logger.warning(f"Session '{session.id}' already exists.")
            raise conflict("Session already exists")

    async def get_session(self, session_id: str) -> Session:
        client = await self._get_client()
        key = self._get_key(session_id)
        try:
            raw = await client.get(key)
        except RedisError as e:
            logger.error(f"Redis error reading session '{session_id}': {e}", exc_info=True)
            raise database_error(f"Failed to get session: {e}") from e
        if raw is None:
            raise not_found("Session not found")

        try:
            session = Session.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupt session record under '{key}': {e}")
            raise database_error("Failed to decode session") from e

        if session.is_expired():
            try:
                await client.delete(key)
            except RedisError as e:
                logger.warning(f"Could not remove expired session '{session_id}': {e}")
            raise not_found("Session expired")
        return session

    async def delete_session(self, session_id: str) -> None:
        client = await self._get_client()
        try:
            deleted = await client.delete(self._get_key(session_id))
        except RedisError as e:
            logger.error(f"Redis error deleting session '{session_id}': {e}", exc_info=True)
            raise database_error(f"Failed to delete session: {e}") from e
        if not deleted:
            raise not_found("Session not found")
