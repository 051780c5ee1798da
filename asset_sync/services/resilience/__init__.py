"""
Resilience Service - Graceful Degradation for Asset Reads

Responsibilities:
- Serve the last good payload when the asset store fails
- Detect offline mode and probe for recovery in the background
- Preload assets to warm the fallback cache
- Export/import the fallback cache as a JSON snapshot
"""

from .cache import FallbackCache, FallbackEntry, FallbackSnapshot, FallbackSnapshotEntry
from .client import PreloadResult, ResilientAssetClient

__all__ = [
    "FallbackCache",
    "FallbackEntry",
    "FallbackSnapshot",
    "FallbackSnapshotEntry",
    "PreloadResult",
    "ResilientAssetClient",
]
