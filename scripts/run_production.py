#!/usr/bin/env python3
"""
Production run script for the Notice Board API.
"""
import os
import sys
import signal
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn
from core.logging import setup_logging, get_logger
from core.config import settings

# Setup logging first
setup_logging()
logger = get_logger("production")

REQUIRED_VARS = ["JWT_SECRET_KEY"]
DATABASE_VARS = ["DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME"]


def handle_signal(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Received shutdown signal", signal=signum)
    sys.exit(0)


def missing_environment() -> list:
    """Return the required environment variables that are not set."""
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]
    # A full DATABASE_URL replaces the individual connection settings
    if not os.getenv("DATABASE_URL"):
        missing.extend(var for var in DATABASE_VARS if not os.getenv(var))
    return missing


def main():
    """Main entry point for production deployment."""
    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    logger.info("Starting Notice Board API",
                version=settings.app_version,
                environment=settings.environment,
                debug=settings.debug)

    missing_vars = missing_environment()
    if missing_vars:
        logger.error("Missing required environment variables", missing=missing_vars)
        sys.exit(1)

    if settings.oauth_state_backend != "database" and int(os.getenv("WORKERS", "1")) > 1:
        logger.warning("In-memory OAuth state is not shared between workers; set OAUTH_STATE_BACKEND=database")

    logger.info("Configuration loaded",
                database_host=settings.db_host,
                database_name=settings.db_name,
                log_level=settings.log_level,
                oauth_state_backend=settings.oauth_state_backend,
                enable_security_headers=settings.enable_security_headers)

    uvicorn_config = {
        "app": "main:app",
        "host": "0.0.0.0",
        "port": int(os.getenv("PORT", "8000")),
        "workers": int(os.getenv("WORKERS", "1")),
        "log_level": settings.log_level.lower(),
        "access_log": settings.enable_request_logging,
        "reload": False,
        "proxy_headers": True,
    }

    ssl_keyfile = os.getenv("SSL_KEYFILE")
    ssl_certfile = os.getenv("SSL_CERTFILE")
    if ssl_keyfile and ssl_certfile:
        uvicorn_config.update({
            "ssl_keyfile": ssl_keyfile,
            "ssl_certfile": ssl_certfile,
        })
        logger.info("SSL enabled", keyfile=ssl_keyfile, certfile=ssl_certfile)

    logger.info("Starting uvicorn server", port=uvicorn_config["port"], workers=uvicorn_config["workers"])
    uvicorn.run(**uvicorn_config)


if __name__ == "__main__":
    main()
