"""
Transfer Configuration

Reads service settings from environment variables.
"""

import os
from typing import Optional

from quickdrop.infrastructure.network import get_local_ip

GIB = 1024 * 1024 * 1024
MIB = 1024 * 1024

STORAGE_BACKENDS = ("local", "memory")
RECORD_BACKENDS = ("memory", "redis")
REAPER_MODES = ("thread", "celery", "off")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class TransferConfig:
    """Transfer service configuration settings."""

    def __init__(self):
        # Server
        self.host = os.getenv("QUICKDROP_HOST", "0.0.0.0")
        self.port = int(os.getenv("QUICKDROP_PORT", 8989))
        self.public_base_url: Optional[str] = os.getenv("PUBLIC_BASE_URL") or None
        self.open_browser = _env_bool("OPEN_BROWSER", False)

        # Payload storage
        self.storage_backend = os.getenv("STORAGE_BACKEND", "local").lower()
        self.storage_dir = os.getenv("STORAGE_DIR", "./uploads")
        self.storage_max_bytes = int(os.getenv("STORAGE_MAX_BYTES", GIB))
        self.storage_timeout_seconds = float(os.getenv("STORAGE_TIMEOUT_SECONDS", 60))
        self.storage_retry_backoff_seconds = float(
            os.getenv("STORAGE_RETRY_BACKOFF_SECONDS", 0.2)
        )
        self.max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", 512 * MIB))

        # Object lifetime
        self.default_ttl_seconds = int(os.getenv("DEFAULT_TTL_SECONDS", 3600))
        self.max_ttl_seconds = int(os.getenv("MAX_TTL_SECONDS", 86400))
        self.default_max_retrievals = int(os.getenv("DEFAULT_MAX_RETRIEVALS", 1))
        self.max_retrievals_limit = int(os.getenv("MAX_RETRIEVALS_LIMIT", 10))

        # Record map and reaper
        self.record_backend = os.getenv("RECORD_BACKEND", "memory").lower()
        self.reaper_mode = os.getenv("REAPER_MODE", "thread").lower()
        self.reaper_interval_seconds = float(os.getenv("REAPER_INTERVAL_SECONDS", 60))
        self.orphan_grace_seconds = int(os.getenv("ORPHAN_GRACE_SECONDS", 3600))

        self.validate()

    def validate(self) -> None:
        """
        Check value ranges and enumerations.

        Raises:
            ValueError: If a setting is out of range
        """
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of {STORAGE_BACKENDS}")
        if self.record_backend not in RECORD_BACKENDS:
            raise ValueError(f"RECORD_BACKEND must be one of {RECORD_BACKENDS}")
        if self.reaper_mode not in REAPER_MODES:
            raise ValueError(f"REAPER_MODE must be one of {REAPER_MODES}")
        if self.reaper_mode == "celery" and (self.record_backend != "redis"
                                             or self.storage_backend != "local"):
            # A worker process cannot see another process's in-memory state
            raise ValueError("REAPER_MODE=celery requires RECORD_BACKEND=redis and STORAGE_BACKEND=local")
        if self.default_ttl_seconds <= 0 or self.max_ttl_seconds < self.default_ttl_seconds:
            raise ValueError("DEFAULT_TTL_SECONDS must be positive and not exceed MAX_TTL_SECONDS")
        if not 1 <= self.default_max_retrievals <= self.max_retrievals_limit:
            raise ValueError("DEFAULT_MAX_RETRIEVALS must be between 1 and MAX_RETRIEVALS_LIMIT")
        if self.reaper_interval_seconds <= 0:
            raise ValueError("REAPER_INTERVAL_SECONDS must be positive")
        if self.max_upload_bytes <= 0:
            raise ValueError("MAX_UPLOAD_BYTES must be positive")

    @property
    def base_url(self) -> str:
        """Public URL prefix used in share links."""
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://{get_local_ip()}:{self.port}"
