#!/usr/bin/env python3
"""Create all learnpath tables in the configured database.

Run from repo root:
    python scripts/init_db.py
"""

import asyncio
import logging
import sys
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT_DIR / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Import after adjusting sys.path.
from learnpath.core.config import get_settings
from learnpath.db.base import close_all, init_databases

logger = logging.getLogger("init_db")


async def main() -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    logger.info(f"Creating tables in {settings.DATABASE_URL.split('@')[-1]}")
    try:
        await init_databases()
    finally:
        await close_all()
    logger.info("Done")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
