# lucia_toolkit/auth/storage_interfaces.py
import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from .models import Session, UserInfo

logger = logging.getLogger(__name__)

# Any user record exposing a string `id` attribute
U = TypeVar("U")


class AbstractUserStore(ABC, Generic[U]):
    """Abstract base class for persisting application users created through OAuth logins."""

    @abstractmethod
    async def get_user_by_provider_id(self, provider: str, provider_id: str) -> U:
        """Look up a user by provider name and provider-side id. Raises NotFound when absent."""
        pass

    @abstractmethod
    async def create_user(self, user_info: UserInfo) -> U:
        """Create a user from provider profile data. Raises Conflict on duplicates."""
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> U:
        """Look up a user by its store id. Raises NotFound when absent."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up storage resources."""
        pass


class AbstractSessionStore(ABC):
    """Abstract base class for persisting login sessions."""

    @abstractmethod
    async def create_session(self, session: Session) -> None:
        """Store a new session. Raises Conflict when the id already exists."""
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> Session:
        """
        Retrieve a live session.

        Raises NotFound when the session is absent or expired. Expired records
        are removed on read.
        """
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Remove a session. Raises NotFound when absent."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up storage resources."""
        pass
