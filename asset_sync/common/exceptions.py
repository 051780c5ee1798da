"""
Custom Exception Classes for the Asset Sync client

Hierarchical exception structure shared by the asset client and the
resilience layer. Every error carries a ``recoverable`` flag; the retry
loop in the asset client only retries recoverable failures.
"""


class AssetSyncError(Exception):
    """Base exception for all asset sync errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class AssetConfigError(AssetSyncError):
    """Configuration-related errors"""

    def __init__(self, message: str):
        super().__init__(f"Config Error: {message}", recoverable=False)


class AssetValidationError(AssetSyncError):
    """Malformed input or master row (never retried)"""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class AssetNotFoundError(AssetSyncError):
    """No master row exists for the requested registry/key"""

    def __init__(self, registry: str, key: str):
        self.registry = registry
        self.key = key
        super().__init__(f"Asset {registry}/{key} not found", recoverable=False)


class AssetUpdateError(AssetSyncError):
    """Failure during the transactional read-repair sequence"""

    def __init__(
        self,
        message: str,
        registry: str | None = None,
        key: str | None = None,
        attempts: int | None = None,
        last_error: BaseException | None = None,
    ):
        self.registry = registry
        self.key = key
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message, recoverable=True)

    @property
    def connectivity_failure(self) -> bool:
        """True when the underlying failure was losing the store connection"""
        return isinstance(self.last_error, DatabaseConnectionError)


class DatabaseConnectionError(AssetUpdateError):
    """Could not acquire a store connection"""

    def __init__(self, message: str, host: str | None = None):
        self.host = host
        super().__init__(f"Failed to connect to database: {message}")

    @property
    def connectivity_failure(self) -> bool:
        return True


class RegistrationConflictError(AssetUpdateError):
    """Another writer registered the same (user_key, registry, key) first"""

    def __init__(self, registry: str, key: str, user_key: str):
        self.user_key = user_key
        super().__init__(
            f"Registration conflict for {registry}/{key} (user_key={user_key})",
            registry=registry,
            key=key,
        )


class ClientClosedError(AssetSyncError):
    """Asset client used after close()"""

    def __init__(self, message: str = "Asset client is closed"):
        super().__init__(message, recoverable=False)


class FallbackCacheError(AssetSyncError):
    """Fallback cache import/export/persistence errors"""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message, recoverable=False)


def is_connectivity_error(error: BaseException) -> bool:
    """Check whether an error means the store is unreachable"""
    return isinstance(error, AssetUpdateError) and error.connectivity_failure
