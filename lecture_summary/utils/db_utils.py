import logging

import asyncpg

from lecture_summary.utils.config import Settings


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Creates the process-wide Postgres connection pool."""
    if not settings.database_url:
        logging.error("DATABASE_URL not configured")
        raise RuntimeError("DATABASE_URL not configured")

    pool = await asyncpg.create_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        statement_cache_size=0,
    )
    logging.info("Postgres connection pool established")
    return pool
