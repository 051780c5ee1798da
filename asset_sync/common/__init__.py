"""
Common Utilities

Shared modules used by the asset client and the resilience layer:
- config.py - Configuration dataclass and YAML/env loader
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- timestamp.py - UTC timestamp helpers
"""

from .config import AssetClientConfig, load_client_config
from .exceptions import (
    AssetSyncError,
    AssetConfigError,
    AssetValidationError,
    AssetNotFoundError,
    AssetUpdateError,
    DatabaseConnectionError,
    RegistrationConflictError,
    ClientClosedError,
    FallbackCacheError,
    is_connectivity_error,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    log_asset_registered,
    log_asset_updated,
    log_retry_attempt,
    log_connectivity_change,
    log_preload_summary,
)

__all__ = [
    # Config
    "AssetClientConfig",
    "load_client_config",
    # Exceptions
    "AssetSyncError",
    "AssetConfigError",
    "AssetValidationError",
    "AssetNotFoundError",
    "AssetUpdateError",
    "DatabaseConnectionError",
    "RegistrationConflictError",
    "ClientClosedError",
    "FallbackCacheError",
    "is_connectivity_error",
    # Logging
    "setup_logging",
    "get_service_logger",
    "log_asset_registered",
    "log_asset_updated",
    "log_retry_attempt",
    "log_connectivity_change",
    "log_preload_summary",
]
