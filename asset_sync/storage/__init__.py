"""
Asset Store

SQLAlchemy Core schema, row records and the pooled async engine the
asset client runs its transactions on.
"""

from .connection_pool import StoreConnectionPool, normalize_url
from .models import Asset, AssetRetrievalLog, calculate_hash
from .schema import (
    asset_log_table,
    asset_retrieval_table,
    asset_table,
    create_schema,
    metadata,
)

__all__ = [
    "StoreConnectionPool",
    "normalize_url",
    "Asset",
    "AssetRetrievalLog",
    "calculate_hash",
    "asset_table",
    "asset_log_table",
    "asset_retrieval_table",
    "create_schema",
    "metadata",
]
