"""
Asset Service - Read-Repair Access to Managed Assets

Responsibilities:
- Register a consumer copy of a master asset on first use
- Archive and refresh the copy when the master changes
- Record every successful read
- Retry failed attempts with linear backoff
"""

from .client import AssetClient

__all__ = ["AssetClient"]
