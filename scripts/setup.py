#!/usr/bin/env python3
"""Setup script for the tour admin API: migrate the schema and seed sample tours."""

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from app.core.config import settings
from app.core.database import Database
from app.models import Tour
from app.services.slug import generate_slug
from app.services.tour_service import default_short_description

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

server_dir = Path(__file__).parent.parent / "server"

SAMPLE_TOURS = [
    {
        "name": "Passeio pelo Vale do Douro",
        "description": "Full-day trip through the Douro valley with two winery visits, "
                       "a traditional lunch and a short river cruise.",
        "price": 120,
        "duration": 9,
        "category": "Wine",
        "is_featured": True,
    },
    {
        "name": "Lisbon Old Town Walk",
        "description": "Walk through Alfama and Mouraria with a local guide, ending with a "
                       "pastel de nata at a neighbourhood bakery.",
        "price": 35,
        "duration": 3,
        "category": "Walking",
        "is_promotion": True,
        "promotion_price": 29,
    },
    {
        "name": "Sintra e Cascais",
        "description": "Pena Palace, Quinta da Regaleira and the coastal road back through Cascais.",
        "price": 85,
        "duration": 8,
        "category": "Day Trip",
    },
]


def run_migrations():
    """Upgrade the database schema to the latest revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data():
    """Insert the sample tours into an empty catalog."""
    database = Database(settings.database_url)
    logger.info("Creating sample data...")

    try:
        async with database.session_factory() as db:
            existing = await db.scalar(select(func.count()).select_from(Tour))
            if existing:
                logger.info("Sample data already exists, skipping...")
                return

            for data in SAMPLE_TOURS:
                db.add(Tour(
                    slug=generate_slug(data["name"]),
                    short_description=default_short_description(data["description"]),
                    **data,
                ))
            await db.commit()
            logger.info(f"Created {len(SAMPLE_TOURS)} sample tours")
    finally:
        await database.dispose()


def main():
    """Main setup function."""
    logger.info("Starting tour admin API setup...")

    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn app.main:app --reload")


if __name__ == "__main__":
    main()
