#!/usr/bin/env python3
"""
MedPortal - Role-based patient management API.

Main entry point for the application.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError as SettingsValidationError

from medportal.core.config.settings import Settings, get_settings
from medportal.core.logger import setup_structured_logging
from medportal.models.database import Database


async def init_database(settings: Settings) -> None:
    """Create the baseline schema and exit."""
    async with Database(settings.database_url, settings.db_pool_size):
        logger.info("Database schema is up to date")


def run_server(settings: Settings, host: str, port: int) -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    from web.app import create_app

    app = create_app(settings)
    # log_config=None keeps uvicorn on the intercepted stdlib root logger
    uvicorn.run(app, host=host, port=port, log_config=None, proxy_headers=False)


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="MedPortal - patient management API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--logs-dir", type=Path, default=None, help="Write log files here")
    parser.add_argument(
        "--init-db", action="store_true", help="Create database tables and exit"
    )
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except SettingsValidationError as e:
        # Logging is not configured yet; loguru's default stderr sink is enough
        logger.error(f"Invalid configuration:\n{e}")
        sys.exit(1)

    setup_structured_logging(
        level=(args.log_level or settings.log_level).upper(),
        json_format=settings.log_json,
        logs_dir=args.logs_dir,
        diagnose=settings.is_development(),
    )

    if args.init_db:
        asyncio.run(init_database(settings))
        return

    run_server(settings, args.host, args.port)


if __name__ == "__main__":
    main()
