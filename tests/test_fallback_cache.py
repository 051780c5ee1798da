"""
Fallback cache storage and snapshot validation.
"""

import json
from datetime import datetime, timezone

import pytest

from asset_sync.common.exceptions import FallbackCacheError
from asset_sync.services.resilience.cache import FallbackCache, describe_entries


def _snapshot(entries, version=1) -> str:
    return json.dumps({
        "version": version,
        "exported_at": "2026-01-01T00:00:00+00:00",
        "entries": entries,
    })


def test_put_get_remove():
    cache = FallbackCache()
    cache.put("reg", "a", "A")

    entry = cache.get("reg", "a")
    assert entry.data == "A"
    assert entry.last_updated.tzinfo is not None

    assert cache.remove("reg", "a") is True
    assert cache.remove("reg", "a") is False
    assert cache.get("reg", "a") is None


def test_remove_registry_only_touches_that_registry():
    cache = FallbackCache()
    cache.put("reg", "a", "A")
    cache.put("reg", "b", "B")
    cache.put("other", "a", "C")

    assert cache.remove_registry("reg") == 2
    assert len(cache) == 1
    assert cache.get("other", "a").data == "C"


def test_snapshot_is_sorted():
    cache = FallbackCache()
    cache.put("b", "x", "1")
    cache.put("a", "z", "2")
    cache.put("a", "y", "3")

    assert [(r, k) for r, k, _ in cache.snapshot()] == [("a", "y"), ("a", "z"), ("b", "x")]
    assert [d["key"] for d in describe_entries(cache)] == ["y", "z", "x"]


def test_import_replaces_contents():
    cache = FallbackCache()
    cache.put("stale", "entry", "old")

    count = cache.import_json(_snapshot([
        {"registry": "reg", "key": "a", "data": "A", "last_updated": "2026-01-01T10:00:00"},
    ]))

    assert count == 1
    assert cache.get("stale", "entry") is None
    entry = cache.get("reg", "a")
    assert entry.data == "A"
    # Naive timestamps are read as UTC
    assert entry.last_updated == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw", [
    "not json",
    json.dumps([1, 2, 3]),
    json.dumps({"version": 1, "entries": []}),
    _snapshot("not-a-list"),
    _snapshot([{"registry": "", "key": "a", "data": "A", "last_updated": "2026-01-01T00:00:00Z"}]),
    _snapshot([{"registry": "reg", "key": "a", "data": "A"}]),
    _snapshot([{"registry": "reg", "key": "a", "data": "A", "last_updated": "yesterday"}]),
    _snapshot([], version=2),
])
def test_malformed_snapshots_are_rejected(raw):
    cache = FallbackCache()
    cache.put("reg", "a", "keep")

    with pytest.raises(FallbackCacheError) as exc_info:
        cache.import_json(raw)

    assert exc_info.value.operation == "import"
    assert cache.get("reg", "a").data == "keep"
    assert len(cache) == 1


def test_save_is_atomic_and_loadable(tmp_path):
    path = tmp_path / "cache.json"
    cache = FallbackCache()
    cache.put("reg", "a", "A")
    cache.save(path)

    assert path.exists()
    assert not list(tmp_path.glob("*.tmp"))

    restored = FallbackCache()
    assert restored.load(path) is True
    assert restored.get("reg", "a").data == "A"


def test_load_missing_file(tmp_path):
    assert FallbackCache().load(tmp_path / "missing.json") is False


def test_load_corrupt_file(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{truncated", encoding="utf-8")

    with pytest.raises(FallbackCacheError):
        FallbackCache().load(path)


def test_duplicate_entries_are_rejected():
    cache = FallbackCache()
    cache.put("reg", "a", "keep")
    entry = {"registry": "reg", "key": "a", "data": "A", "last_updated": "2026-01-01T00:00:00Z"}

    with pytest.raises(FallbackCacheError, match="Duplicate") as exc_info:
        cache.import_json(_snapshot([entry, {**entry, "data": "B"}]))

    assert exc_info.value.operation == "import"
    assert cache.get("reg", "a").data == "keep"
