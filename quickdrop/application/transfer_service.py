"""
Transfer Service

Application service mapping the HTTP surface onto the lifecycle manager's
operations: upload, download, status and QR code.
"""

import logging
import posixpath
from datetime import timedelta
from typing import BinaryIO, Optional

from quickdrop.domain.object_lifecycle.entities import ObjectMetadata
from quickdrop.domain.object_lifecycle.services import ConsumeResult, Denied, LifecycleManager
from quickdrop.domain.object_lifecycle.value_objects import ObjectStatus
from quickdrop.infrastructure.qr_code_renderer import QrCodeRenderer

from .upload_result import UploadResult

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "download"


class TransferService:
    """
    Thin adapter between the API layer and LifecycleManager.

    Denial reasons stay inside this layer: every gone object looks the same
    to clients.
    """

    def __init__(self, lifecycle_manager: LifecycleManager, qr_renderer: QrCodeRenderer,
                 base_url: str, default_ttl_seconds: int = 3600,
                 max_ttl_seconds: int = 86400, default_max_retrievals: int = 1,
                 max_retrievals_limit: int = 10):
        """
        Initialize TransferService.

        Args:
            lifecycle_manager: Domain service owning object state
            qr_renderer: Renders download URLs as PNG
            base_url: Public URL prefix for share links
            default_ttl_seconds: Lifetime when the upload does not name one
            max_ttl_seconds: Upper bound for a requested lifetime
            default_max_retrievals: Download limit when the upload does not name one
            max_retrievals_limit: Upper bound for a requested download limit
        """
        self.lifecycle_manager = lifecycle_manager
        self.qr_renderer = qr_renderer
        self.base_url = base_url.rstrip("/")
        self.default_ttl_seconds = default_ttl_seconds
        self.max_ttl_seconds = max_ttl_seconds
        self.default_max_retrievals = default_max_retrievals
        self.max_retrievals_limit = max_retrievals_limit

    @classmethod
    def from_config(cls, lifecycle_manager: LifecycleManager, qr_renderer: QrCodeRenderer,
                    config) -> 'TransferService':
        """Build a TransferService from a TransferConfig."""
        return cls(
            lifecycle_manager,
            qr_renderer,
            base_url=config.base_url,
            default_ttl_seconds=config.default_ttl_seconds,
            max_ttl_seconds=config.max_ttl_seconds,
            default_max_retrievals=config.default_max_retrievals,
            max_retrievals_limit=config.max_retrievals_limit,
        )

    def download_url(self, token: str) -> str:
        return f"{self.base_url}/download/{token}"

    def upload(self, content: BinaryIO, filename: Optional[str],
               content_type: Optional[str] = None,
               ttl_seconds: Optional[int] = None,
               max_retrievals: Optional[int] = None) -> UploadResult:
        """
        Store an uploaded file and issue its share link.

        Args:
            content: Upload stream
            filename: Client-supplied filename
            content_type: Client-supplied MIME type
            ttl_seconds: Requested lifetime, bounded by max_ttl_seconds
            max_retrievals: Requested download limit, bounded by max_retrievals_limit

        Returns:
            UploadResult with token, url and qr_url

        Raises:
            ValueError: If an option is out of range
            StorageFullError: If storage is out of space
            StorageUnavailableError: If storage cannot be written
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if not 1 <= ttl <= self.max_ttl_seconds:
            raise ValueError(f"ttl_seconds must be between 1 and {self.max_ttl_seconds}")

        limit = self.default_max_retrievals if max_retrievals is None else max_retrievals
        if not 1 <= limit <= self.max_retrievals_limit:
            raise ValueError(f"max_retrievals must be between 1 and {self.max_retrievals_limit}")

        metadata = ObjectMetadata(
            original_name=self.clean_filename(filename),
            content_type=content_type or "application/octet-stream",
        )
        record = self.lifecycle_manager.register(
            content, metadata, ttl=timedelta(seconds=ttl), max_retrievals=limit
        )

        return UploadResult(
            token=record.token,
            url=self.download_url(record.token),
            qr_url=f"/qr/{record.token}",
            expires_at=record.expires_at,
            max_retrievals=record.max_retrievals,
        )

    def download(self, token: str) -> Optional[ConsumeResult]:
        """
        Consume one retrieval.

        Returns:
            ConsumeResult whose payload the caller must stream and close,
            or None if the object is gone
        """
        outcome = self.lifecycle_manager.try_consume(token)
        if isinstance(outcome, Denied):
            return None
        return outcome

    def is_active(self, token: str) -> bool:
        """True while the object can still be downloaded."""
        return self.lifecycle_manager.status(token) is ObjectStatus.ACTIVE

    def qr_png(self, token: str) -> Optional[bytes]:
        """
        QR code for an active object's download URL.

        Returns:
            PNG bytes, or None if the object is gone
        """
        if not self.is_active(token):
            return None
        return self.qr_renderer.render(self.download_url(token))

    @staticmethod
    def clean_filename(filename: Optional[str]) -> str:
        """Strip directories and control characters from a client filename."""
        if not filename:
            return DEFAULT_FILENAME
        name = posixpath.basename(filename.replace("\\", "/"))
        name = "".join(ch for ch in name if ch.isprintable()).strip()
        if name in ("", ".", ".."):
            return DEFAULT_FILENAME
        return name
