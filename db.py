# db.py
import logging

from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from config import settings

logger = logging.getLogger(__name__)

# --- Connection string ---
# DATABASE_URL comes from the environment; production forces SSL
DATABASE_URL = make_conninfo(settings.database_url, sslmode=settings.database_ssl_mode)

# Global pool, created lazily on first request
_pool: AsyncConnectionPool | None = None


async def _get_pool() -> AsyncConnectionPool:
    """Open the pool on first use; later calls return the same pool."""
    global _pool

    if _pool is None:
        logger.info("Initializing database connection pool")
        pool = AsyncConnectionPool(
            conninfo=DATABASE_URL,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            # psycopg_pool waits 30 s by default
            timeout=settings.db_pool_timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        try:
            await pool.open()
            logger.info("Database connection pool opened")
        except Exception:
            logger.exception("Unable to open database connection pool")
            raise
        _pool = pool

    return _pool


async def getDB():
    """
    FastAPI dependency yielding one pooled connection per request.

    - The pool is opened on first use.
    - Rows come back as dicts (record["id"]).
    - The connection is committed and returned to the pool when the request
      finishes, or rolled back if the handler raised.
    - Waiting for a free connection is bounded by DB_POOL_TIMEOUT.
    """
    pool = await _get_pool()
    async with pool.connection() as conn:
        yield conn


async def close_pool() -> None:
    """Close the pool on application shutdown."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")


async def db_healthcheck(timeout: float | None = None) -> bool:
    """Return True when PostgreSQL answers `SELECT 1` within `timeout` seconds."""
    timeout = settings.db_healthcheck_timeout if timeout is None else timeout
    try:
        pool = await _get_pool()
        async with pool.connection(timeout=timeout) as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchone()
        return True
    except Exception as e:
        logger.warning("Database healthcheck failed: %s", e)
        return False
