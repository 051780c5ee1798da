"""
Shared fixtures: a real SQLite asset store in tmp_path, seeded through a
separate engine so tests observe exactly what the client committed.
"""

import uuid
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import create_async_engine

from asset_sync.common.config import AssetClientConfig
from asset_sync.common.timestamp import utc_now
from asset_sync.services.asset.client import AssetClient
from asset_sync.storage.connection_pool import normalize_url
from asset_sync.storage.models import Asset, calculate_hash
from asset_sync.storage.schema import (
    asset_log_table,
    asset_retrieval_table,
    asset_table,
    create_schema,
)

REGISTRY = "github.com/org/cfg"
KEY = "a.json"
USER_KEY = "svc"


class AssetStore:
    """Test-side view of the asset store"""

    def __init__(self, engine):
        self.engine = engine

    async def seed_master(
        self,
        registry: str = REGISTRY,
        key: str = KEY,
        data: str = '{"x":1}',
        data_hash: str | None = "",
        **extra,
    ) -> Asset:
        """Insert a master row; data_hash defaults to the SHA-256 of data"""
        master = Asset(
            id=uuid.uuid4(),
            created_at=utc_now(),
            user_key=None,
            asset_registry=registry,
            asset_key=key,
            asset_class=extra.get("asset_class", "config"),
            asset_type=extra.get("asset_type", "json"),
            description=extra.get("description"),
            data=data,
            data_hash=calculate_hash(data) if data_hash == "" else data_hash,
            registry_commit=extra.get("registry_commit"),
            registry_commit_url=extra.get("registry_commit_url"),
        )
        async with self.engine.begin() as conn:
            await conn.execute(sa.insert(asset_table).values(**master.to_dict()))
        return master

    async def publish(
        self,
        registry: str = REGISTRY,
        key: str = KEY,
        data: str = '{"x":2}',
        data_hash: str | None = "",
    ) -> None:
        """Overwrite the master payload, as a publisher would"""
        async with self.engine.begin() as conn:
            await conn.execute(
                sa.update(asset_table)
                .where(
                    asset_table.c.user_key.is_(None),
                    asset_table.c.asset_registry == registry,
                    asset_table.c.asset_key == key,
                )
                .values(
                    data=data,
                    data_hash=calculate_hash(data) if data_hash == "" else data_hash,
                )
            )

    async def insert(self, asset: Asset) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(sa.insert(asset_table).values(**asset.to_dict()))

    async def registered(self, user_key: str = USER_KEY) -> list[Asset]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                sa.select(asset_table).where(asset_table.c.user_key == user_key)
            )
            return [Asset.from_row(row) for row in result]

    async def log_rows(self) -> list:
        async with self.engine.connect() as conn:
            result = await conn.execute(sa.select(asset_log_table))
            return [row._mapping for row in result]

    async def retrievals(self) -> list:
        async with self.engine.connect() as conn:
            result = await conn.execute(sa.select(asset_retrieval_table))
            return [row._mapping for row in result]

    async def count(self, table: sa.Table) -> int:
        async with self.engine.connect() as conn:
            result = await conn.execute(sa.select(sa.func.count()).select_from(table))
            return result.scalar_one()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'assets.db'}"


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def make_config(db_url):
    def _make(**overrides) -> AssetClientConfig:
        values = {
            "connection_string": db_url,
            "user_key": USER_KEY,
            "max_retries": 3,
            "retry_delay_ms": 1,
            "connection_timeout_ms": 5000,
        }
        values.update(overrides)
        return AssetClientConfig(**values)
    return _make


@pytest_asyncio.fixture
async def store(db_url):
    engine = create_async_engine(normalize_url(db_url))
    await create_schema(engine)
    yield AssetStore(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(store, make_config, logger):
    asset_client = AssetClient(make_config(), logger=logger)
    yield asset_client
    await asset_client.close()
