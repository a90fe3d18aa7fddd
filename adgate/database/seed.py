"""
Schema bootstrap and reference seeding.

    python -m adgate.database.seed
"""

import asyncio

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from adgate.database.connection import SessionProvider, close_database, get_db, init_database
from adgate.database.dml import build_insert_ignore
from adgate.database.models import Base, Platform

logger = structlog.get_logger(__name__)

DEFAULT_PLATFORMS = ("Amazon", "Flipkart", "Myntra")


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ensured", tables=len(Base.metadata.tables))


async def seed_platforms(session_provider: SessionProvider, names=DEFAULT_PLATFORMS) -> None:
    """Insert the default marketplaces, leaving existing rows untouched."""
    records = [{"name": name} for name in names]
    async with session_provider() as db:
        await db.execute(build_insert_ignore(db, Platform, records))
    logger.info("Platforms seeded", platforms=list(names))


async def main():
    logger.info("Starting database seeding...")
    engine = await init_database()
    try:
        await create_schema(engine)
        await seed_platforms(get_db)
        logger.info("Database seeding completed successfully!")
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await close_database()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
