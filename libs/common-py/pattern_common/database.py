import asyncpg
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from .logging_config import configure_logging

logger = configure_logging("common-py:database")


class DatabaseManager:
    """Async PostgreSQL database manager using asyncpg"""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Create connection pool"""
        timezone = os.getenv("TZ", "UTC")

        self.pool = await asyncpg.create_pool(
            self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            init=lambda conn: conn.execute(f"SET TIME ZONE '{timezone}'"),
            command_timeout=60.0,
            server_settings={"application_name": "pattern_matcher"},
        )
        logger.info("Database pool created", min_size=self.min_size, max_size=self.max_size)

    async def disconnect(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if not self.pool:
            raise RuntimeError("Database not connected")
        return self.pool

    async def execute(self, query: str, *args) -> str:
        """Execute a query and return status"""
        async with self._require_pool().acquire() as conn:
            return await conn.execute(query, *args)

    async def executemany(self, query: str, args: List[Tuple]) -> None:
        """Execute a query for multiple sets of parameters"""
        async with self._require_pool().acquire() as conn:
            await conn.executemany(query, args)

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Fetch single row"""
        async with self._require_pool().acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """Fetch all rows"""
        async with self._require_pool().acquire() as conn:
            return await conn.fetch(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection inside a transaction; commits on clean exit, rolls back on error."""
        async with self._require_pool().acquire() as conn:
            async with conn.transaction():
                yield conn
