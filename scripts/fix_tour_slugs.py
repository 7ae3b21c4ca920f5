#!/usr/bin/env python3
"""Regenerate every tour slug from its current name."""

import asyncio
import logging

from app.core.config import settings
from app.core.database import Database
from app.services.slug import regenerate_slugs

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    database = Database(settings.database_url)
    try:
        async with database.session_factory() as db:
            changed = await regenerate_slugs(db)
    finally:
        await database.dispose()
    logger.info(f"Slug fix completed, {changed} tour(s) updated")


if __name__ == "__main__":
    asyncio.run(main())
