"""
Fallback Cache

Last successfully retrieved payload per (registry, key), used when the
asset store is unavailable. Entries can be exported to and imported from
a versioned JSON snapshot, in memory or on disk.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from asset_sync.common.exceptions import FallbackCacheError
from asset_sync.common.logging_setup import get_service_logger
from asset_sync.common.timestamp import ensure_utc, utc_now

logger = get_service_logger("resilience.cache")

SNAPSHOT_VERSION = 1


# ============================================================================
# Snapshot schema
# ============================================================================

class FallbackSnapshotEntry(BaseModel):
    """One cached asset in an exported snapshot"""
    registry: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    data: str
    last_updated: datetime


class FallbackSnapshot(BaseModel):
    """Exported fallback cache"""
    version: int = SNAPSHOT_VERSION
    exported_at: datetime
    entries: list[FallbackSnapshotEntry] = Field(default_factory=list)


# ============================================================================
# Cache
# ============================================================================

@dataclass
class FallbackEntry:
    """Cached payload and when it was last fetched from the store"""
    data: str
    last_updated: datetime


class FallbackCache:
    """
    Thread-safe in-memory fallback store.

    Every read and write goes through one lock; no method awaits, so the
    lock is never held across a suspension point.
    """

    def __init__(self):
        self._entries: dict[tuple[str, str], FallbackEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, registry: str, key: str) -> FallbackEntry | None:
        with self._lock:
            return self._entries.get((registry, key))

    def put(self, registry: str, key: str, data: str, last_updated: datetime | None = None) -> None:
        entry = FallbackEntry(data=data, last_updated=last_updated or utc_now())
        with self._lock:
            self._entries[(registry, key)] = entry

    def remove(self, registry: str, key: str) -> bool:
        with self._lock:
            return self._entries.pop((registry, key), None) is not None

    def remove_registry(self, registry: str) -> int:
        """Drop every entry of one registry, returning how many went"""
        with self._lock:
            doomed = [k for k in self._entries if k[0] == registry]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> list[tuple[str, str, FallbackEntry]]:
        """Point-in-time copy of all entries, sorted by (registry, key)"""
        with self._lock:
            items = list(self._entries.items())
        return [(registry, key, entry) for (registry, key), entry in sorted(items, key=lambda i: i[0])]

    def export_json(self) -> str:
        """Serialize the cache to a version 1 JSON snapshot"""
        snapshot = FallbackSnapshot(
            exported_at=utc_now(),
            entries=[
                FallbackSnapshotEntry(
                    registry=registry,
                    key=key,
                    data=entry.data,
                    last_updated=entry.last_updated,
                )
                for registry, key, entry in self.snapshot()
            ],
        )
        return snapshot.model_dump_json()

    def import_json(self, raw: str) -> int:
        """
        Replace the cache with the contents of a JSON snapshot.

        The snapshot is validated in full before anything changes.

        Returns:
            Number of entries imported

        Raises:
            FallbackCacheError: If the snapshot is malformed
        """
        try:
            snapshot = FallbackSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise FallbackCacheError(
                f"Invalid fallback cache snapshot: {e}", operation="import"
            ) from e

        if snapshot.version != SNAPSHOT_VERSION:
            raise FallbackCacheError(
                f"Unsupported fallback cache snapshot version: {snapshot.version}",
                operation="import",
            )

        entries: dict[tuple[str, str], FallbackEntry] = {}
        for item in snapshot.entries:
            entry_key = (item.registry, item.key)
            if entry_key in entries:
                raise FallbackCacheError(
                    f"Duplicate fallback cache entry: {item.registry}/{item.key}",
                    operation="import",
                )
            entries[entry_key] = FallbackEntry(
                data=item.data,
                last_updated=ensure_utc(item.last_updated),
            )

        with self._lock:
            self._entries = entries

        logger.info(f"Imported {len(entries)} fallback cache entries")
        return len(entries)

    def save(self, path: str | Path) -> None:
        """Write a snapshot to disk (temp file, then rename)"""
        path = Path(path)
        temp_path = path.with_suffix(path.suffix + ".tmp")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(self.export_json())
            temp_path.replace(path)
        except OSError as e:
            raise FallbackCacheError(
                f"Failed to save fallback cache to {path}: {e}", operation="save"
            ) from e

        logger.debug(f"Fallback cache saved to {path}")

    def load(self, path: str | Path) -> bool:
        """
        Replace the cache from a snapshot file.

        Returns:
            False if the file doesn't exist, True once loaded

        Raises:
            FallbackCacheError: If the file is unreadable or malformed
        """
        path = Path(path)
        if not path.exists():
            return False

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise FallbackCacheError(
                f"Failed to read fallback cache from {path}: {e}", operation="load"
            ) from e

        self.import_json(raw)
        return True


def describe_entries(cache: FallbackCache) -> list[dict]:
    """Status rows for each cached entry"""
    return [
        {
            "registry": registry,
            "key": key,
            "last_updated": entry.last_updated.isoformat(),
        }
        for registry, key, entry in cache.snapshot()
    ]

