# lucia_toolkit/auth/memory_store.py
import logging
import threading
from typing import Dict, Tuple

from ..errors import conflict, not_found
from ..utils.security import generate_id
from .models import Session, User, UserInfo
from .storage_interfaces import AbstractSessionStore, AbstractUserStore

logger = logging.getLogger(__name__)


class InMemoryUserStore(AbstractUserStore[User]):
    """Process-local user store. Contents are lost on restart."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        logger.info("InMemoryUserStore initialized.")

    async def teardown(self) -> None:
        with self._lock:
            self._users.clear()
        logger.info("InMemoryUserStore teardown.")

    async def get_user_by_provider_id(self, provider: str, provider_id: str) -> User:
        with self._lock:
            for user in self._users.values():
                if user.provider == provider and user.provider_id == provider_id:
                    return user
        raise not_found("User not found")

    async def get_user_by_id(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise not_found("User not found")
        return user

    async def create_user(self, user_info: UserInfo) -> User:
        user = User(
            id=generate_id(),
            email=user_info.email,
            name=user_info.name,
            provider=user_info.provider_name,
            provider_id=user_info.external_id,
            profile_picture=user_info.profile_picture,
        )
        key: Tuple[str, str] = (user.provider, user.provider_id)
        with self._lock:
            if user.id in self._users:
                raise conflict("User already exists")
            if any((u.provider, u.provider_id) == key for u in self._users.values()):
                raise conflict("User already exists")
            self._users[user.id] = user
        logger.debug(f"Created user '{user.id}' for {user.provider}:{user.provider_id}.")
        return user


class InMemorySessionStore(AbstractSessionStore):
    """Process-local session store with lazy expiry on read."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        logger.info("InMemorySessionStore initialized.")

    async def teardown(self) -> None:
        with self._lock:
            self._sessions.clear()
        logger.info("InMemorySessionStore teardown.")

    async def create_session(self, session: Session) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise conflict("Session already exists")
            self._sessions[session.id] = session.model_copy()
        logger.debug(f"Stored session '{session.id}' for user '{session.user_id}'.")

    async def get_session(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise not_found("Session not found")

        if session.is_expired():
            with self._lock:
                self._sessions.pop(session_id, None)
            logger.info(f"Session '{session_id}' expired and was removed.")
            raise not_found("Session expired")

        return session.model_copy()

    async def delete_session(self, session_id: str) -> None:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is None:
            raise not_found("Session not found")
        logger.debug(f"Deleted session '{session_id}'.")
