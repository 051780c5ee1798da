"""
Asset Store Schema

Table definitions for the three record families:
- asset: master rows (user_key IS NULL) and per-consumer registered rows
- asset_log: append-only archive of superseded registered content
- asset_retrieval: append-only record of successful reads

Uniqueness is enforced with two partial indexes: one master row per
(registry, key), one registered row per (user_key, registry, key). The
registered index is what turns a concurrent first registration into an
IntegrityError for the losing transaction.
"""

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine

metadata = sa.MetaData()

asset_table = sa.Table(
    "asset",
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_key", sa.Text, nullable=True),
    sa.Column("asset_registry", sa.Text, nullable=False),
    sa.Column("asset_key", sa.Text, nullable=False),
    sa.Column("asset_class", sa.Text),
    sa.Column("asset_type", sa.Text),
    sa.Column("description", sa.Text),
    sa.Column("data", sa.Text, nullable=False),
    sa.Column("data_hash", sa.Text),
    sa.Column("registry_commit", sa.Text),
    sa.Column("registry_commit_url", sa.Text),
    sa.Index(
        "uq_asset_master",
        "asset_registry",
        "asset_key",
        unique=True,
        postgresql_where=sa.text("user_key IS NULL"),
        sqlite_where=sa.text("user_key IS NULL"),
    ),
    sa.Index(
        "uq_asset_registered",
        "user_key",
        "asset_registry",
        "asset_key",
        unique=True,
        postgresql_where=sa.text("user_key IS NOT NULL"),
        sqlite_where=sa.text("user_key IS NOT NULL"),
    ),
)

asset_log_table = sa.Table(
    "asset_log",
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column("asset_id", sa.Uuid, nullable=False, index=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("logged_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_key", sa.Text),
    sa.Column("asset_registry", sa.Text, nullable=False),
    sa.Column("asset_key", sa.Text, nullable=False),
    sa.Column("asset_class", sa.Text),
    sa.Column("asset_type", sa.Text),
    sa.Column("description", sa.Text),
    sa.Column("data", sa.Text, nullable=False),
    sa.Column("data_hash", sa.Text),
    sa.Column("registry_commit", sa.Text),
    sa.Column("registry_commit_url", sa.Text),
)

asset_retrieval_table = sa.Table(
    "asset_retrieval",
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_key", sa.Text, nullable=False),
    sa.Column("asset_id", sa.Uuid, nullable=False, index=True),
    sa.Column("asset_registry", sa.Text, nullable=False),
    sa.Column("asset_key", sa.Text, nullable=False),
)

# Columns cloned from master on registration and copied on refresh
CONTENT_COLUMNS = (
    "asset_registry",
    "asset_key",
    "asset_class",
    "asset_type",
    "description",
    "data",
    "data_hash",
    "registry_commit",
    "registry_commit_url",
)

# Columns overwritten in place when a registered row goes stale
REFRESH_COLUMNS = (
    "description",
    "data",
    "data_hash",
    "registry_commit",
    "registry_commit_url",
)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the asset tables and indexes if they don't exist"""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
