#!/usr/bin/env python
"""
Initialize database tables from SQLAlchemy models.
Run this once to create all tables.
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env before settings are imported
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path, override=True)

from bugtracker.core.config import settings  # noqa: E402
from bugtracker.core.db import close_db, init_db  # noqa: E402
from bugtracker.core.logging import configure_logging, get_logger  # noqa: E402

logger = get_logger(__name__)


async def main() -> bool:
    configure_logging()
    logger.info("init_db_start", database_url=settings.async_database_url.split("@")[-1])
    try:
        await init_db()
    except Exception as exc:  # noqa: BLE001
        logger.error("init_db_failed", error=str(exc))
        return False
    finally:
        await close_db()

    logger.info("init_db_complete")
    return True


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(main()) else 1)
