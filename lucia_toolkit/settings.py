# lucia_toolkit/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# settings.py lives at <root>/lucia_toolkit/settings.py
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_name: str = "Lucia Toolkit"
    debug_mode: bool = False

    # "memory" or "sqlite" for both user and session stores
    storage_backend: str = "sqlite"
    # Optional override for sessions only ("memory", "sqlite" or "redis")
    session_backend: Optional[str] = None

    # SQLite configuration
    sqlite_db_path: str = "./lucia_toolkit_data.sqlite3"

    # Redis configuration (session_backend="redis")
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    # Session and cookie settings
    session_cookie_name: str = "auth_session"
    oauth_state_cookie_name: str = "oauth_state"
    oauth_state_max_age_seconds: int = 600
    cookie_secure: bool = True
    session_ttl_seconds: int = 3600 * 24
    login_redirect_path: str = "/api/profile"

    # OAuth provider credentials; a provider is registered only when its client id is set
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = Field(
        default=None,
        description="Client secret issued by Google. Never logged."
    )
    google_redirect_uri: Optional[str] = None
    github_client_id: Optional[str] = None
    github_client_secret: Optional[str] = Field(
        default=None,
        description="Client secret issued by GitHub. Never logged."
    )
    github_redirect_uri: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )

    @property
    def effective_session_backend(self) -> str:
        """Backend used for sessions, falling back to the shared storage backend."""
        return self.session_backend or self.storage_backend


settings = Settings()

logger.debug(
    f"Settings loaded: storage_backend='{settings.storage_backend}', "
    f"session_backend='{settings.effective_session_backend}', "
    f"google_client_secret={'********' if settings.google_client_secret else 'None'}, "
    f"github_client_secret={'********' if settings.github_client_secret else 'None'}"
)
