"""
asset-sync

Consumer-side client for centrally managed assets: read-repair of a
per-consumer copy on every read, with an optional resilience wrapper
that falls back to cached payloads when the store is unavailable.
"""

from .common import (
    AssetClientConfig,
    AssetConfigError,
    AssetNotFoundError,
    AssetSyncError,
    AssetUpdateError,
    AssetValidationError,
    ClientClosedError,
    DatabaseConnectionError,
    FallbackCacheError,
    RegistrationConflictError,
    load_client_config,
)
from .services.asset import AssetClient
from .services.resilience import PreloadResult, ResilientAssetClient
from .storage import calculate_hash, create_schema

__version__ = "1.0.0"

__all__ = [
    "AssetClient",
    "ResilientAssetClient",
    "PreloadResult",
    "AssetClientConfig",
    "load_client_config",
    "calculate_hash",
    "create_schema",
    "AssetSyncError",
    "AssetConfigError",
    "AssetValidationError",
    "AssetNotFoundError",
    "AssetUpdateError",
    "DatabaseConnectionError",
    "RegistrationConflictError",
    "ClientClosedError",
    "FallbackCacheError",
]
