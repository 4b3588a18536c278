"""
Vasudha Access Registration Proxy Entry Point.

Bootstraps the dependency graph via constructor injection and serves
the registration proxy with uvicorn.  Every subsystem is wired here,
no module-level globals.

Usage::

    python main.py
"""

from __future__ import annotations

import sys
import traceback

import uvicorn

from vasudha_access.config import get_config
from vasudha_access.database import DatabaseManager
from vasudha_access.logger import StructuredLogger, get_logger
from vasudha_access.server import create_app
from vasudha_access.services import create_proxy_registration_service


def main() -> None:
    """Application entry point: wire dependencies and serve the proxy."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting Vasudha Access registration proxy...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()
    # The proxy cannot create confirmed identities without the elevated key.
    config.validate_admin_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (service-role client for the proxy)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        service_role_key=config.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )

    # ------------------------------------------------------------------
    # 3. Registration service (elevated path) and HTTP app
    # ------------------------------------------------------------------
    registration_service = create_proxy_registration_service(db=db, config=config)
    app = create_app(config=config, registration_service=registration_service)

    # ------------------------------------------------------------------
    # 4. Serve (blocks until interrupted)
    # ------------------------------------------------------------------
    logger.info("Listening on %s:%s", config.HOST, config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
    logger.info("Vasudha Access shut down.")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        sys.stderr.write(
            "FATAL: "
            + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        )
        sys.exit(1)
