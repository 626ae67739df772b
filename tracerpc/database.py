"""
PostgreSQL access to the indexer store.

Read-only: the gateway never writes to the indexer's tables. A single
``asyncpg`` pool is shared by every request; the pool queues callers when
all connections are busy. Driver and connection failures surface as
``TraceQueryError``.
"""
import ssl
from typing import Any, List, Optional

import asyncpg

from .config.loader import DatabaseConfig
from .exceptions import TraceQueryError
from .logger import get_logger

logger = get_logger(__name__)

STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _ssl_context(config: DatabaseConfig) -> Optional[ssl.SSLContext]:
    if not config.ssl:
        return None
    context = ssl.create_default_context()
    if not config.ssl_reject_unauthorized:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class Database:
    """Thin wrapper over an asyncpg pool"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @staticmethod
    async def create(config: DatabaseConfig) -> "Database":
        """Open the connection pool"""
        pool = await asyncpg.create_pool(
            host=config.host,
            port=config.port,
            database=config.name,
            user=config.user,
            password=config.password,
            min_size=1,
            max_size=config.pool_size,
            max_inactive_connection_lifetime=config.idle_timeout,
            timeout=config.connection_timeout,
            ssl=_ssl_context(config),
        )
        logger.info(
            f"PostgreSQL pool ready: {config.host or 'localhost'}:{config.port}/{config.name} "
            f"(max {config.pool_size} connections)"
        )
        return Database(pool)

    async def fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        try:
            return await self.pool.fetch(query, *args)
        except STORE_ERRORS as e:
            raise TraceQueryError(f"store query failed: {e}") from e

    async def fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        try:
            return await self.pool.fetchrow(query, *args)
        except STORE_ERRORS as e:
            raise TraceQueryError(f"store query failed: {e}") from e

    async def fetchval(self, query: str, *args: Any) -> Any:
        try:
            return await self.pool.fetchval(query, *args)
        except STORE_ERRORS as e:
            raise TraceQueryError(f"store query failed: {e}") from e

    async def ping(self) -> bool:
        """Round-trip ``SELECT 1``; raises ``TraceQueryError`` on failure."""
        return await self.fetchval("SELECT 1") == 1

    async def close(self) -> None:
        await self.pool.close()
        logger.info("PostgreSQL pool closed.")
