"""
Resilient Asset Client

Wraps an asset client with:
- Fallback to the last good payload when a read fails
- Offline detection (connectivity-class failures only)
- Background health probe that clears offline mode
- Concurrent preload to warm the fallback cache
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Protocol

from asset_sync.common.exceptions import AssetValidationError, is_connectivity_error
from asset_sync.common.logging_setup import (
    get_service_logger,
    log_connectivity_change,
    log_preload_summary,
)
from asset_sync.common.timestamp import age_seconds, utc_now

from .cache import FallbackCache, describe_entries

DEFAULT_HEALTH_CHECK_INTERVAL_MS = 30000


class SupportsAssetReads(Protocol):
    """What the resilient client needs from the client it wraps"""

    async def get_asset(self, asset_registry: str, asset_key: str) -> str: ...

    async def test_connection(self) -> bool: ...

    async def close(self) -> None: ...


def _configured_interval_ms(client: SupportsAssetReads) -> int:
    """Health check interval from the wrapped client's config, if it has one"""
    config = getattr(client, "config", None)
    interval = getattr(config, "health_check_interval_ms", None)
    return interval if isinstance(interval, int) else DEFAULT_HEALTH_CHECK_INTERVAL_MS


@dataclass
class PreloadResult:
    """Aggregate outcome of preload_assets()"""
    total: int
    loaded: int
    failed: int
    failures: list[tuple[str, str, BaseException]] = field(default_factory=list)


class ResilientAssetClient:
    """
    Asset client with graceful degradation.

    Composition over inheritance: any object with get_asset(),
    test_connection() and close() can be wrapped.
    """

    def __init__(
        self,
        client: SupportsAssetReads,
        *,
        health_check_interval_ms: int | None = None,
        cache: FallbackCache | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        if health_check_interval_ms is None:
            health_check_interval_ms = _configured_interval_ms(client)
        if health_check_interval_ms <= 0:
            raise AssetValidationError("health_check_interval_ms must be positive")

        self._client = client
        self._health_check_interval = health_check_interval_ms / 1000
        self._cache = cache if cache is not None else FallbackCache()
        self._logger = logger or get_service_logger("resilience.client")

        self._state_lock = threading.Lock()
        self._offline = False

        self._running = False
        self._closed = False
        self._task: asyncio.Task | None = None

    @property
    def client(self) -> SupportsAssetReads:
        return self._client

    @property
    def cache(self) -> FallbackCache:
        return self._cache

    @property
    def is_offline(self) -> bool:
        with self._state_lock:
            return self._offline

    @property
    def health_check_interval(self) -> float:
        """Seconds between probes while offline"""
        return self._health_check_interval

    @property
    def health_check_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "ResilientAssetClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_asset(self, asset_registry: str, asset_key: str) -> str:
        """Plain read through the wrapped client (no fallback)"""
        return await self._client.get_asset(asset_registry, asset_key)

    async def test_connection(self) -> bool:
        return await self._client.test_connection()

    async def get_asset_with_fallback(self, asset_registry: str, asset_key: str) -> str:
        """
        Read an asset, falling back to the cached payload on failure.

        Raises:
            The wrapped client's error, unchanged, when nothing is cached
        """
        try:
            data = await self._client.get_asset(asset_registry, asset_key)
        except Exception as e:
            entry = self._cache.get(asset_registry, asset_key)
            if entry is None:
                raise

            self._logger.warning(
                f"Using fallback for {asset_registry}/{asset_key} "
                f"(age {age_seconds(entry.last_updated):.0f}s): {e}",
                extra={
                    "registry": asset_registry,
                    "key": asset_key,
                    "last_updated": entry.last_updated.isoformat(),
                    "error_type": type(e).__name__,
                },
            )

            if is_connectivity_error(e):
                self._mark_offline(str(e))

            return entry.data

        # Cache refresh and offline flag change together for get_fallback_status()
        with self._state_lock:
            self._cache.put(asset_registry, asset_key, data, utc_now())
            came_online = self._offline
            self._offline = False

        if came_online:
            log_connectivity_change(self._logger, False, "read succeeded")
        return data

    async def preload_assets(self, assets: Iterable[tuple[str, str]]) -> PreloadResult:
        """
        Warm the fallback cache by fetching every (registry, key) concurrently.

        Failures are logged in aggregate, never raised.
        """
        pairs = list(assets)
        results = await asyncio.gather(
            *(self.get_asset_with_fallback(registry, key) for registry, key in pairs),
            return_exceptions=True,
        )

        failures = [
            (registry, key, result)
            for (registry, key), result in zip(pairs, results)
            if isinstance(result, BaseException)
        ]
        for registry, key, error in failures:
            self._logger.debug(f"Preload of {registry}/{key} failed: {error}")

        log_preload_summary(self._logger, len(pairs), len(failures))

        return PreloadResult(
            total=len(pairs),
            loaded=len(pairs) - len(failures),
            failed=len(failures),
            failures=failures,
        )

    # ------------------------------------------------------------------
    # Fallback cache management
    # ------------------------------------------------------------------

    def get_fallback_status(self) -> dict[str, Any]:
        """Snapshot of offline state and cached entries"""
        with self._state_lock:
            offline = self._offline
            details = describe_entries(self._cache)
        return {
            "is_offline": offline,
            "cached_assets": len(details),
            "cache_details": details,
        }

    def clear_fallback_cache(
        self,
        asset_registry: str | None = None,
        asset_key: str | None = None,
    ) -> None:
        """
        Clear one entry, one registry, or everything.

        Raises:
            AssetValidationError: If asset_key is given without asset_registry
        """
        if asset_key is not None and asset_registry is None:
            raise AssetValidationError("asset_key requires asset_registry")

        if asset_registry is not None and asset_key is not None:
            self._cache.remove(asset_registry, asset_key)
        elif asset_registry is not None:
            self._cache.remove_registry(asset_registry)
        else:
            self._cache.clear()

    def export_fallback_cache(self) -> str:
        return self._cache.export_json()

    def import_fallback_cache(self, snapshot: str) -> int:
        """Replace the cache from a JSON snapshot (FallbackCacheError if malformed)"""
        return self._cache.import_json(snapshot)

    def save_fallback_cache(self, path: str | Path) -> None:
        self._cache.save(path)

    def load_fallback_cache(self, path: str | Path) -> bool:
        return self._cache.load(path)

    # ------------------------------------------------------------------
    # Connectivity state
    # ------------------------------------------------------------------

    def _mark_offline(self, reason: str) -> None:
        with self._state_lock:
            changed = not self._offline
            self._offline = True

        if changed:
            log_connectivity_change(self._logger, True, reason)

        # Make sure someone is probing for recovery
        if not self._closed:
            self._ensure_health_check()

    def _mark_online(self, reason: str) -> None:
        with self._state_lock:
            changed = self._offline
            self._offline = False

        if changed:
            log_connectivity_change(self._logger, False, reason)

    # ------------------------------------------------------------------
    # Background health check
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background health check"""
        if self._closed:
            return
        self._ensure_health_check()
        self._logger.info(
            f"Resilient asset client started (health check interval: {self._health_check_interval}s)"
        )

    def _ensure_health_check(self) -> None:
        if self.health_check_running:
            return
        self._running = True
        self._task = asyncio.create_task(self._health_check_loop())

    async def _health_check_loop(self) -> None:
        """Probe the store while offline; clear offline mode once it answers"""
        while self._running:
            await asyncio.sleep(self._health_check_interval)

            if not self.is_offline:
                continue

            try:
                if await self._client.test_connection():
                    self._mark_online("connection restored")
                else:
                    self._logger.debug("Health check failed, still offline")
            except Exception as e:
                self._logger.error(f"Health check error: {e}", exc_info=True)

    async def close(self) -> None:
        """Stop the health check, then close the wrapped client (idempotent)"""
        if self._closed:
            return
        self._closed = True

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self._client.close()
        self._logger.info("Resilient asset client closed")
