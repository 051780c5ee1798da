"""
Asset Client

Returns the current payload of a named asset for this consumer,
registering or refreshing the consumer's private copy on the way.

Each attempt runs in one transaction on one pooled connection:
1. Look up the registered row (user_key, registry, key)
2. Look up the master row (user_key IS NULL)
3. No master → AssetNotFoundError, nothing written
4. No registered row → clone master into a new registered row
5. Fingerprint differs → archive registered row, refresh it in place
6. Append a retrieval log entry, commit, return the payload

Whole attempts are retried with linear backoff (retry_delay × attempt).
"""

import asyncio
import logging

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection

from asset_sync.common.config import AssetClientConfig
from asset_sync.common.exceptions import (
    AssetNotFoundError,
    AssetSyncError,
    AssetUpdateError,
    AssetValidationError,
    ClientClosedError,
    RegistrationConflictError,
)
from asset_sync.common.logging_setup import (
    get_service_logger,
    log_asset_registered,
    log_asset_updated,
    log_retry_attempt,
)
from asset_sync.storage.connection_pool import StoreConnectionPool
from asset_sync.storage.models import Asset, AssetRetrievalLog, refresh_values
from asset_sync.storage.schema import asset_log_table, asset_retrieval_table, asset_table


class AssetClient:
    """
    Consumer-side asset reader.

    Owns the store connection pool and the consumer identity (user_key).
    get_asset() is the single read entry point for collaborators.
    """

    def __init__(
        self,
        config: AssetClientConfig,
        *,
        pool: StoreConnectionPool | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self._config = config
        self._user_key = config.user_key
        self._max_retries = config.max_retries
        self._retry_delay = config.retry_delay_seconds
        self._logger = logger or get_service_logger("asset.client")

        self._pool = pool or StoreConnectionPool(
            config.connection_string,
            connection_timeout=config.connection_timeout_seconds,
            pool_size=config.pool_size,
        )
        self._closed = False

    @property
    def user_key(self) -> str:
        return self._user_key

    @property
    def config(self) -> AssetClientConfig:
        return self._config

    @property
    def pool(self) -> StoreConnectionPool:
        return self._pool

    async def __aenter__(self) -> "AssetClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def get_asset(self, asset_registry: str, asset_key: str) -> str:
        """
        Get an asset, registering or updating this consumer's copy as needed.

        Args:
            asset_registry: Registry namespace (e.g. "github.com/org/cfg")
            asset_key: Path within the registry (e.g. "a.json")

        Returns:
            Payload of the consumer's (now current) copy

        Raises:
            AssetValidationError: Malformed input or master row (not retried)
            AssetNotFoundError: No master row (not retried)
            AssetUpdateError: All attempts failed; wraps the last failure
            ClientClosedError: Client already closed
        """
        self._validate_asset_params(asset_registry, asset_key)

        last_error: AssetSyncError | None = None

        for attempt in range(1, self._max_retries + 1):
            if self._closed:
                raise ClientClosedError()

            try:
                return await self._get_asset_with_transaction(asset_registry, asset_key)
            except AssetSyncError as e:
                if not e.recoverable:
                    raise
                last_error = e

            if attempt < self._max_retries:
                delay = self.retry_delay_for(attempt)
                log_retry_attempt(
                    self._logger, asset_registry, asset_key,
                    attempt, self._max_retries, delay, last_error,
                )
                await asyncio.sleep(delay)

        raise AssetUpdateError(
            f"Failed to get asset {asset_registry}/{asset_key} after "
            f"{self._max_retries} attempts: {last_error}",
            registry=asset_registry,
            key=asset_key,
            attempts=self._max_retries,
            last_error=last_error,
        ) from last_error

    def retry_delay_for(self, attempt: int) -> float:
        """Backoff in seconds after failed attempt number ``attempt`` (1-based)"""
        return self._retry_delay * attempt

    async def _get_asset_with_transaction(self, asset_registry: str, asset_key: str) -> str:
        """One read-repair attempt; all writes commit or roll back together"""
        async with self._pool.acquire() as conn:
            try:
                async with conn.begin():
                    registered = await self._fetch_registered(conn, asset_registry, asset_key)
                    master = await self._fetch_master(conn, asset_registry, asset_key)

                    if master is None:
                        raise AssetNotFoundError(asset_registry, asset_key)

                    if not master.data_hash:
                        raise AssetValidationError(
                            f"Master asset {asset_registry}/{asset_key} has no data_hash"
                        )

                    if registered is None:
                        # First time this consumer uses the asset
                        result = await self._create_registration(conn, master)
                    elif registered.data_hash != master.data_hash:
                        await self._archive_to_log(conn, registered)
                        result = await self._update_registration(conn, registered, master)
                    else:
                        result = registered

                    await self._log_retrieval(conn, result)

                return result.data

            except AssetSyncError:
                raise
            except IntegrityError as e:
                raise RegistrationConflictError(
                    asset_registry, asset_key, self._user_key
                ) from e
            except Exception as e:
                # SQLAlchemyError, and raw driver/socket errors from the adapter
                raise AssetUpdateError(
                    f"Failed to get asset {asset_registry}/{asset_key}: {e}",
                    registry=asset_registry,
                    key=asset_key,
                    last_error=e,
                ) from e

    async def _fetch_registered(
        self, conn: AsyncConnection, asset_registry: str, asset_key: str
    ) -> Asset | None:
        query = (
            sa.select(asset_table)
            .where(
                asset_table.c.user_key == self._user_key,
                asset_table.c.asset_registry == asset_registry,
                asset_table.c.asset_key == asset_key,
            )
            .with_for_update()
        )
        row = (await conn.execute(query)).first()
        return Asset.from_row(row) if row is not None else None

    async def _fetch_master(
        self, conn: AsyncConnection, asset_registry: str, asset_key: str
    ) -> Asset | None:
        query = sa.select(asset_table).where(
            asset_table.c.user_key.is_(None),
            asset_table.c.asset_registry == asset_registry,
            asset_table.c.asset_key == asset_key,
        )
        row = (await conn.execute(query)).first()
        return Asset.from_row(row) if row is not None else None

    async def _create_registration(self, conn: AsyncConnection, master: Asset) -> Asset:
        registered = master.registered_copy(self._user_key)
        await conn.execute(sa.insert(asset_table).values(**registered.to_dict()))

        log_asset_registered(
            self._logger, self._user_key,
            master.asset_registry, master.asset_key, str(registered.id),
        )
        return registered

    async def _update_registration(
        self, conn: AsyncConnection, registered: Asset, master: Asset
    ) -> Asset:
        values = refresh_values(master)
        await conn.execute(
            sa.update(asset_table)
            .where(asset_table.c.id == registered.id)
            .values(**values)
        )

        log_asset_updated(
            self._logger, self._user_key,
            registered.asset_registry, registered.asset_key, str(registered.id),
            registered.data_hash or "", master.data_hash or "",
        )

        updated = Asset(**{**registered.to_dict(), **values})
        return updated

    async def _archive_to_log(self, conn: AsyncConnection, asset: Asset) -> None:
        await conn.execute(sa.insert(asset_log_table).values(**asset.to_archive()))

    async def _log_retrieval(self, conn: AsyncConnection, asset: Asset) -> None:
        entry = AssetRetrievalLog(
            user_key=self._user_key,
            asset_id=asset.id,
            asset_registry=asset.asset_registry,
            asset_key=asset.asset_key,
        )
        await conn.execute(sa.insert(asset_retrieval_table).values(**entry.to_dict()))

    @staticmethod
    def _validate_asset_params(asset_registry: str, asset_key: str) -> None:
        if not asset_registry or not isinstance(asset_registry, str):
            raise AssetValidationError(
                "Invalid asset_registry parameter: must be a non-empty string"
            )

        if not asset_key or not isinstance(asset_key, str):
            raise AssetValidationError(
                "Invalid asset_key parameter: must be a non-empty string"
            )

    async def test_connection(self) -> bool:
        """
        Liveness probe: trivial query plus a parameterized read of asset.

        Never raises; failures are logged and reported as False.
        """
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(sa.text("SELECT 1"))
                await conn.execute(
                    sa.select(sa.func.count())
                    .select_from(asset_table)
                    .where(asset_table.c.asset_registry == "test")
                )
            return True
        except Exception as e:
            self._logger.error(f"Database connection test failed: {e}")
            return False

    def get_stats(self) -> dict:
        """Client and pool statistics"""
        return {
            "user_key": self._user_key,
            "closed": self._closed,
            "max_retries": self._max_retries,
            **self._pool.get_stats(),
        }

    async def close(self) -> None:
        """Release the connection pool (idempotent)"""
        if self._closed:
            return
        self._closed = True
        await self._pool.close()
