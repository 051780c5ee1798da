"""
Structured Logging Setup

Consistent logging configuration for the asset client and the resilience layer.
Uses JSON format for structured logs in production.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in (
                "name", "msg", "args", "levelname", "levelno", "pathname",
                "filename", "module", "exc_info", "exc_text", "stack_info",
                "lineno", "funcName", "created", "msecs", "relativeCreated",
                "thread", "threadName", "processName", "process", "service",
                "message", "taskName",
            ):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a component.

    Args:
        service_name: Name of the component (e.g., "asset.client")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"asset_sync.{service_name}")
    logger.setLevel(numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to the host application's root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Level and format come from ASSET_SYNC_LOG_LEVEL and
    ASSET_SYNC_LOG_FORMAT ("json" or "text").
    """
    log_level = os.environ.get("ASSET_SYNC_LOG_LEVEL", "INFO")
    json_format = os.environ.get("ASSET_SYNC_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


# Convenience loggers for the read-repair and resilience events
def log_asset_registered(
    logger: logging.LoggerAdapter,
    user_key: str,
    registry: str,
    key: str,
    asset_id: str,
) -> None:
    """Log a first-time registration of a consumer copy"""
    logger.info(
        f"Registered {registry}/{key} for {user_key}",
        extra={
            "user_key": user_key,
            "registry": registry,
            "key": key,
            "asset_id": asset_id,
        },
    )


def log_asset_updated(
    logger: logging.LoggerAdapter,
    user_key: str,
    registry: str,
    key: str,
    asset_id: str,
    old_hash: str,
    new_hash: str,
) -> None:
    """Log an archive-and-refresh of a stale consumer copy"""
    logger.info(
        f"Updated {registry}/{key} for {user_key} ({old_hash[:8]} → {new_hash[:8]})",
        extra={
            "user_key": user_key,
            "registry": registry,
            "key": key,
            "asset_id": asset_id,
            "old_hash": old_hash,
            "new_hash": new_hash,
        },
    )


def log_retry_attempt(
    logger: logging.LoggerAdapter,
    registry: str,
    key: str,
    attempt: int,
    max_attempts: int,
    delay_s: float,
    error: BaseException,
) -> None:
    """Log a failed attempt that is about to be retried"""
    logger.warning(
        f"get_asset {registry}/{key} attempt {attempt}/{max_attempts} failed, "
        f"retrying in {delay_s:.2f}s: {error}",
        extra={
            "registry": registry,
            "key": key,
            "attempt": attempt,
            "delay_s": delay_s,
            "error_type": type(error).__name__,
        },
    )


def log_connectivity_change(
    logger: logging.LoggerAdapter,
    offline: bool,
    reason: str,
) -> None:
    """Log an online/offline transition"""
    if offline:
        logger.warning(
            f"Asset store unreachable, entering offline mode ({reason})",
            extra={"offline": True, "reason": reason},
        )
    else:
        logger.warning(
            f"Asset client is back online ({reason})",
            extra={"offline": False, "reason": reason},
        )


def log_preload_summary(
    logger: logging.LoggerAdapter,
    total: int,
    failed: int,
) -> None:
    """Log the aggregate outcome of a preload batch"""
    if failed:
        logger.warning(
            f"Failed to preload {failed} of {total} assets",
            extra={"total": total, "failed": failed},
        )
    else:
        logger.info(
            f"Preloaded {total} assets",
            extra={"total": total, "failed": 0},
        )
