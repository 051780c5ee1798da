"""
Asset Store Records

Plain dataclasses for rows read from and written to the asset store.
"""

import hashlib
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Mapping

from asset_sync.common.timestamp import utc_now

from .schema import CONTENT_COLUMNS, REFRESH_COLUMNS


def calculate_hash(data: str) -> str:
    """Fingerprint a payload (hex SHA-256 of its UTF-8 bytes)"""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


@dataclass
class Asset:
    """A master (user_key is None) or registered asset row"""
    id: uuid.UUID
    created_at: datetime
    user_key: str | None
    asset_registry: str
    asset_key: str
    asset_class: str | None
    asset_type: str | None
    description: str | None
    data: str
    data_hash: str | None
    registry_commit: str | None
    registry_commit_url: str | None

    @classmethod
    def from_row(cls, row: Any) -> "Asset":
        """Build from a SQLAlchemy Row (or any mapping of column values)"""
        mapping = row._mapping if hasattr(row, "_mapping") else row
        return cls(**{name: mapping[name] for name in cls.__dataclass_fields__})

    def content(self) -> dict[str, Any]:
        """Content columns, as cloned onto a registration"""
        return {name: getattr(self, name) for name in CONTENT_COLUMNS}

    def registered_copy(self, user_key: str) -> "Asset":
        """A new registered row cloned from this master"""
        return Asset(
            id=uuid.uuid4(),
            created_at=utc_now(),
            user_key=user_key,
            **self.content(),
        )

    def to_archive(self) -> dict[str, Any]:
        """Values for an asset_log row snapshotting this row verbatim"""
        values = asdict(self)
        values["asset_id"] = values.pop("id")
        values["id"] = uuid.uuid4()
        values["logged_at"] = utc_now()
        return values

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AssetRetrievalLog:
    """One successful read by a consumer"""
    user_key: str
    asset_id: uuid.UUID
    asset_registry: str
    asset_key: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def refresh_values(master: Asset) -> Mapping[str, Any]:
    """Column values that bring a stale registered row in line with master"""
    values = {name: getattr(master, name) for name in REFRESH_COLUMNS}
    values["created_at"] = utc_now()
    return values
