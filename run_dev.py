import uvicorn
from dotenv import load_dotenv
import os
from pathlib import Path
import logging

# Configure logging before any application imports
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s RUN_DEV.PY - [%(levelname)s] - %(message)s'
)
logger = logging.getLogger("run_dev_script")

TRUTHY_VALUES = ["true", "1", "yes", "on", "t"]

if __name__ == "__main__":
    project_root = Path(__file__).parent.resolve()
    dotenv_path_explicit = project_root / ".env"

    logger.info(f"Project root (derived from __file__): {project_root}")

    if dotenv_path_explicit.exists():
        logger.info(f".env file FOUND at: {dotenv_path_explicit}")
        load_dotenv(dotenv_path=dotenv_path_explicit, override=True)
    else:
        logger.warning(f".env file NOT FOUND at: {dotenv_path_explicit}. "
                       "Will rely on OS environment variables or pydantic-settings defaults.")

    logger.info(f"DEBUG_MODE: {os.getenv('DEBUG_MODE')}")
    logger.info(f"STORAGE_BACKEND: {os.getenv('STORAGE_BACKEND')}")
    logger.info(f"SESSION_BACKEND: {os.getenv('SESSION_BACKEND')}")
    logger.info(f"GOOGLE_CLIENT_SECRET: {'********' if os.getenv('GOOGLE_CLIENT_SECRET') else 'None'}")
    logger.info(f"GITHUB_CLIENT_SECRET: {'********' if os.getenv('GITHUB_CLIENT_SECRET') else 'None'}")

    host = os.getenv("DEV_SERVER_HOST", "127.0.0.1")
    port = int(os.getenv("DEV_SERVER_PORT", "3000"))
    uvicorn_log_level = os.getenv("DEV_SERVER_LOG_LEVEL", "info").lower()

    debug_mode = os.getenv("DEBUG_MODE", "False").lower() in TRUTHY_VALUES
    reload_bool = os.getenv("DEV_SERVER_RELOAD", str(debug_mode)).lower() in TRUTHY_VALUES

    logger.info(f"Starting Uvicorn server on {host}:{port} (reload={reload_bool})")

    uvicorn.run(
        "lucia_toolkit.main:app",
        host=host,
        port=port,
        log_level=uvicorn_log_level,
        reload=reload_bool
    )
