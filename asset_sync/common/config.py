"""
Configuration Dataclasses

Type-safe configuration for the asset client and its resilience wrapper.
Values come from a YAML file, with environment variables taking precedence.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import AssetConfigError


DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_CONNECTION_TIMEOUT_MS = 10000
DEFAULT_POOL_SIZE = 5
DEFAULT_HEALTH_CHECK_INTERVAL_MS = 30000

# Searched in order when no explicit path is given
CONFIG_SEARCH_PATHS = [
    Path("/etc/asset-sync/config.yaml"),
    Path("asset-sync.yaml"),
]


@dataclass
class AssetClientConfig:
    """Asset client configuration"""
    connection_string: str
    user_key: str
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    connection_timeout_ms: int = DEFAULT_CONNECTION_TIMEOUT_MS
    pool_size: int = DEFAULT_POOL_SIZE

    # Resilience layer
    health_check_interval_ms: int = DEFAULT_HEALTH_CHECK_INTERVAL_MS

    def __post_init__(self) -> None:
        errors = []

        if not self.connection_string or not isinstance(self.connection_string, str):
            errors.append("connection_string is required")
        if not self.user_key or not isinstance(self.user_key, str):
            errors.append("user_key is required")
        if self.max_retries < 1:
            errors.append("max_retries must be at least 1")
        if self.retry_delay_ms < 0:
            errors.append("retry_delay_ms must not be negative")
        if self.connection_timeout_ms <= 0:
            errors.append("connection_timeout_ms must be positive")
        if self.pool_size < 1:
            errors.append("pool_size must be at least 1")
        if self.health_check_interval_ms <= 0:
            errors.append("health_check_interval_ms must be positive")

        if errors:
            raise AssetConfigError("; ".join(errors))

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def connection_timeout_seconds(self) -> float:
        return self.connection_timeout_ms / 1000

    @property
    def health_check_interval_seconds(self) -> float:
        return self.health_check_interval_ms / 1000


def find_config_path() -> Path | None:
    """Find the configuration file, honouring ASSET_SYNC_CONFIG"""
    env_path = os.environ.get("ASSET_SYNC_CONFIG")
    if env_path:
        return Path(env_path)

    for path in CONFIG_SEARCH_PATHS:
        if path.exists():
            return path

    return None


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise AssetConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise AssetConfigError(f"Error parsing {path}: {e}")

    if not isinstance(data, dict):
        raise AssetConfigError(f"{path} must contain a mapping at the top level")
    return data


def _env_int(name: str) -> int | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise AssetConfigError(f"{name} must be an integer, got {value!r}")


def load_client_config(path: str | Path | None = None) -> AssetClientConfig:
    """
    Load AssetClientConfig from YAML and environment.

    Layout:
        store: {url, connection_timeout_ms, pool_size}
        consumer: {user_key}
        retry: {max_retries, retry_delay_ms}
        resilience: {health_check_interval_ms}

    Environment overrides: ASSET_SYNC_DATABASE_URL (or DATABASE_URL),
    ASSET_SYNC_USER_KEY, ASSET_SYNC_MAX_RETRIES, ASSET_SYNC_RETRY_DELAY_MS,
    ASSET_SYNC_CONNECTION_TIMEOUT_MS, ASSET_SYNC_POOL_SIZE,
    ASSET_SYNC_HEALTH_CHECK_INTERVAL_MS.

    Raises:
        AssetConfigError: If the file is unreadable or required values are missing
    """
    config_path = Path(path) if path is not None else find_config_path()
    data: dict[str, Any] = _read_yaml(config_path) if config_path else {}

    store = data.get("store") or {}
    consumer = data.get("consumer") or {}
    retry = data.get("retry") or {}
    resilience = data.get("resilience") or {}

    connection_string = (
        os.environ.get("ASSET_SYNC_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or store.get("url", "")
    )
    user_key = os.environ.get("ASSET_SYNC_USER_KEY") or consumer.get("user_key", "")

    def pick(env_name: str, section: dict, field_name: str, default: int) -> int:
        env_value = _env_int(env_name)
        if env_value is not None:
            return env_value
        value = section.get(field_name, default)
        if isinstance(value, bool) or not isinstance(value, int):
            raise AssetConfigError(f"{field_name} must be an integer, got {value!r}")
        return value

    return AssetClientConfig(
        connection_string=connection_string,
        user_key=user_key,
        max_retries=pick("ASSET_SYNC_MAX_RETRIES", retry, "max_retries", DEFAULT_MAX_RETRIES),
        retry_delay_ms=pick("ASSET_SYNC_RETRY_DELAY_MS", retry, "retry_delay_ms", DEFAULT_RETRY_DELAY_MS),
        connection_timeout_ms=pick(
            "ASSET_SYNC_CONNECTION_TIMEOUT_MS", store, "connection_timeout_ms",
            DEFAULT_CONNECTION_TIMEOUT_MS,
        ),
        pool_size=pick("ASSET_SYNC_POOL_SIZE", store, "pool_size", DEFAULT_POOL_SIZE),
        health_check_interval_ms=pick(
            "ASSET_SYNC_HEALTH_CHECK_INTERVAL_MS", resilience, "health_check_interval_ms",
            DEFAULT_HEALTH_CHECK_INTERVAL_MS,
        ),
    )
