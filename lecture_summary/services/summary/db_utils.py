import logging
import uuid
from typing import Optional

import asyncpg

from lecture_summary.utils.errors import PersistenceError

# Errors that mean the database could not serve the statement.
DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class SummaryStore:
    """
    Append-only summary history on top of a shared asyncpg pool.
    Rows are never updated, so no statement needs a transaction or a lock.
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def save(self, lecture_id: str, summary_text: str) -> uuid.UUID:
        """
        Inserts a new summary row. The timestamp is set by the database.
        """
        summary_id = uuid.uuid4()
        try:
            await self._pool.execute(
                """
                INSERT INTO summaries (id, lecture_id, summary_text)
                VALUES ($1, $2, $3)
                """,
                summary_id,
                lecture_id,
                summary_text,
            )
        except DB_ERRORS as e:
            logging.error(f"[{lecture_id}]: Failed to save summary: {e}")
            raise PersistenceError(f"Failed to save summary: {e}") from e
        return summary_id

    async def latest(self, lecture_id: str) -> Optional[str]:
        """
        Returns the most recent summary text for a lecture, or None if there is none.
        """
        try:
            return await self._pool.fetchval(
                """
                SELECT summary_text FROM summaries
                WHERE lecture_id = $1
                ORDER BY timestamp DESC
                LIMIT 1
                """,
                lecture_id,
            )
        except DB_ERRORS as e:
            logging.error(f"[{lecture_id}]: Failed to fetch summary: {e}")
            raise PersistenceError(f"Failed to fetch summary: {e}") from e

    async def ping(self) -> None:
        """Simple connectivity check used by the readiness probe."""
        try:
            await self._pool.fetchval("SELECT 1")
        except DB_ERRORS as e:
            raise PersistenceError(f"Database not reachable: {e}") from e
