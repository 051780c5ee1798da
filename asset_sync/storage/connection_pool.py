"""
Asset Store Connection Pool

Wraps a SQLAlchemy async engine. Every logical operation borrows exactly
one connection through acquire() and gives it back on every exit path.
Failure to check a connection out is raised as DatabaseConnectionError so
callers can tell "store unreachable" apart from other failures.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from asset_sync.common.exceptions import AssetConfigError, DatabaseConnectionError
from asset_sync.common.logging_setup import get_service_logger

logger = get_service_logger("storage.pool")

# Driver-less URLs are mapped onto async drivers
ASYNC_DRIVERS = {
    "postgres": "postgresql+psycopg",
    "postgresql": "postgresql+psycopg",
    "sqlite": "sqlite+aiosqlite",
}


def normalize_url(connection_string: str) -> str:
    """
    Map a plain connection string onto an async SQLAlchemy URL.

    postgresql://... -> postgresql+psycopg://...
    sqlite:///...    -> sqlite+aiosqlite:///...
    """
    scheme, sep, rest = connection_string.partition("://")
    if not sep:
        raise AssetConfigError(f"Invalid connection string: {connection_string!r}")

    driver = ASYNC_DRIVERS.get(scheme)
    if driver:
        return f"{driver}://{rest}"
    return connection_string


class StoreConnectionPool:
    """
    Pooled asset store connections.

    - One AsyncEngine per pool (engine pool sized by pool_size)
    - Checkout bounded by connection_timeout seconds
    - Scoped acquisition via `async with pool.acquire() as conn`
    - close() is idempotent
    """

    def __init__(
        self,
        connection_string: str,
        connection_timeout: float = 10.0,
        pool_size: int = 5,
    ):
        self._url = normalize_url(connection_string)
        self._connection_timeout = connection_timeout
        self._pool_size = pool_size
        self._closed = False
        self._close_lock = asyncio.Lock()

        try:
            self._engine: AsyncEngine = create_async_engine(self._url, **self._engine_options())
        except (ArgumentError, ImportError) as e:
            raise AssetConfigError(f"Cannot create store engine: {e}") from e

        logger.debug(f"Store pool created for {self.host}")

    def _engine_options(self) -> dict:
        """Pool sizing and timeouts per backend"""
        backend = make_url(self._url).get_backend_name()

        if backend == "sqlite":
            # aiosqlite picks its own pool class; sizing options don't apply
            return {"connect_args": {"timeout": self._connection_timeout}}

        options: dict = {
            "pool_size": self._pool_size,
            "pool_timeout": self._connection_timeout,
            "pool_pre_ping": True,
        }
        if backend == "postgresql":
            options["connect_args"] = {
                "connect_timeout": max(1, int(self._connection_timeout)),
            }
        return options

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def host(self) -> str:
        """Store location with credentials stripped, for logs"""
        url = make_url(self._url)
        return f"{url.get_backend_name()}://{url.host or ''}/{url.database or ''}"

    @property
    def is_closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[AsyncConnection]:
        """
        Borrow one pooled connection.

        Raises:
            DatabaseConnectionError: If no connection could be checked out
        """
        try:
            conn = await self._engine.connect()
        except Exception as e:
            # Driver errors may surface unwrapped from the async adapter
            raise DatabaseConnectionError(str(e), host=self.host) from e

        try:
            yield conn
        finally:
            await conn.close()

    def get_stats(self) -> dict:
        """Get connection pool statistics"""
        return {
            "host": self.host,
            "closed": self._closed,
            "pool": self._engine.pool.status(),
        }

    async def close(self) -> None:
        """Dispose all pooled connections"""
        async with self._close_lock:
            if self._closed:
                return
            self._closed = True
            await self._engine.dispose()

        logger.info(f"Store pool closed ({self.host})")
