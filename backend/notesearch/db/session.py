# backend/notesearch/db/session.py
from __future__ import annotations
from psycopg_pool import AsyncConnectionPool
from notesearch.db.config import settings
import logging

logger = logging.getLogger("notesearch.db")

class DatabasePool:
    """Process-wide async psycopg3 connection pool, opened once at startup."""
    pool: AsyncConnectionPool | None = None

    @classmethod
    async def init(cls):
        if cls.pool:
            logger.info("Database pool already initialized.")
            return

        cls.pool = AsyncConnectionPool(
            conninfo=settings.database_url,
            min_size=1,
            max_size=10,
            num_workers=2,
            timeout=30,
            kwargs={"application_name": "notesearch", "autocommit": True},
            open=False,
        )
        await cls.pool.open()
        logger.info("✅ Database connection pool initialized.")

    @classmethod
    async def close(cls):
        if cls.pool:
            await cls.pool.close()
            cls.pool = None
            logger.info("🧹 Database pool closed.")

async def ping_db() -> tuple[bool, str]:
    """Check DB connectivity."""
    try:
        if not DatabasePool.pool:
            return False, "Pool not initialized"
        async with DatabasePool.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1;")
                await cur.fetchone()
                return True, f"Database connection successful: {settings.db_host}:{settings.db_port}/{settings.db_name}"
    except Exception as e:
        return False, str(e)
