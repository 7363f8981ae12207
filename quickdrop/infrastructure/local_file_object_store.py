"""
Local File Object Store

Concrete implementation of IObjectStore for the local filesystem.

Layout under the base directory:

    <token[:2]>/<token>.bin        payload bytes
    <token[:2]>/<token>.meta.json  metadata sidecar

Payloads are streamed into a ``.part`` temp file in the same directory and
hard-linked into place only once complete, so readers never observe partial
bytes and an existing payload is never overwritten.
"""

import errno
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from quickdrop.domain.errors import (
    StorageFullError,
    StorageUnavailableError,
    TokenCollisionError,
)
from quickdrop.domain.file_storage.object_store import (
    IObjectStore,
    PayloadListing,
    StoredPayload,
)
from quickdrop.domain.object_lifecycle.entities import ObjectMetadata
from quickdrop.domain.object_lifecycle.value_objects import AccessToken

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
PAYLOAD_SUFFIX = ".bin"
METADATA_SUFFIX = ".meta.json"
PARTIAL_SUFFIX = ".part"

_NO_SPACE_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class LocalFileObjectStore(IObjectStore):
    """
    Local filesystem implementation of IObjectStore.

    Tracks the bytes it holds so that a configured capacity is enforced while
    the upload is still streaming, not after the disk fills up.

    Attributes:
        base_path: Base directory for payload storage
        max_bytes: Capacity limit in bytes (None for unlimited)
    """

    def __init__(self, base_path: str = "./uploads", max_bytes: Optional[int] = None):
        """
        Initialize the local object store.

        Args:
            base_path: Base directory for storage (default: ./uploads)
            max_bytes: Capacity limit in bytes, None for unlimited
        """
        self.base_path = Path(base_path)
        self.max_bytes = max_bytes
        self._usage_lock = threading.Lock()
        self._ensure_base_directory()
        self._discard_partial_writes()
        self._used_bytes = self._measure_usage()

    def _ensure_base_directory(self) -> None:
        """
        Ensure the base storage directory exists.

        Raises:
            StorageUnavailableError: If the directory cannot be created
        """
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Failed to create storage directory: {self.base_path}", e
            ) from e

    def _discard_partial_writes(self) -> None:
        """Remove temp files left behind by writes interrupted by a crash."""
        for partial in self.base_path.glob(f"*/*{PARTIAL_SUFFIX}"):
            try:
                partial.unlink()
                logger.info(f"Removed partial write {partial.name}")
            except OSError as e:
                logger.warning(f"Failed to remove partial write {partial}: {e}")

    def _measure_usage(self) -> int:
        total = 0
        for payload in self.base_path.glob(f"*/*{PAYLOAD_SUFFIX}"):
            try:
                total += payload.stat().st_size
            except OSError:
                continue
        return total

    def _paths(self, token: str) -> Tuple[Path, Path]:
        AccessToken(token)
        shard = self.base_path / token[:2]
        return shard / f"{token}{PAYLOAD_SUFFIX}", shard / f"{token}{METADATA_SUFFIX}"

    @property
    def used_bytes(self) -> int:
        with self._usage_lock:
            return self._used_bytes

    def _reserve(self, n: int) -> None:
        with self._usage_lock:
            if self.max_bytes is not None and self._used_bytes + n > self.max_bytes:
                raise StorageFullError(
                    f"Storage capacity of {self.max_bytes} bytes exhausted"
                )
            self._used_bytes += n

    def _release(self, n: int) -> None:
        with self._usage_lock:
            self._used_bytes = max(0, self._used_bytes - n)

    # IObjectStore interface methods

    def put(self, token: str, content: BinaryIO, metadata: ObjectMetadata) -> StoredPayload:
        """
        Stream content to disk and publish it under token.

        Raises:
            StorageFullError: If capacity or disk space runs out
            StorageUnavailableError: On other I/O errors
            TokenCollisionError: If a payload already exists for token
        """
        payload_path, metadata_path = self._paths(token)
        if payload_path.exists():
            raise TokenCollisionError(f"Payload already stored for token {token[:8]}")

        written = 0
        temp_name = None
        try:
            payload_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=payload_path.parent, prefix=f"{token}.", suffix=PARTIAL_SUFFIX
            )
            with os.fdopen(fd, "wb") as f:
                while True:
                    chunk = content.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    self._reserve(len(chunk))
                    written += len(chunk)
                    f.write(chunk)
                f.flush()
                os.fsync(f.fileno())

            # link() fails instead of overwriting an existing payload
            os.link(temp_name, payload_path)
            self._write_metadata(metadata_path, token, metadata, written)

        except FileExistsError as e:
            self._release(written)
            raise TokenCollisionError(
                f"Payload already stored for token {token[:8]}", e
            ) from e
        except StorageFullError:
            self._release(written)
            raise
        except OSError as e:
            self._release(written)
            self._remove_quietly(payload_path, metadata_path)
            if e.errno in _NO_SPACE_ERRNOS:
                raise StorageFullError("No space left on storage device", e) from e
            raise StorageUnavailableError(f"Failed to store payload: {e}", e) from e
        except BaseException:
            # Client disconnects surface here as read errors from the stream
            self._release(written)
            self._remove_quietly(payload_path, metadata_path)
            raise
        finally:
            if temp_name is not None:
                self._remove_quietly(Path(temp_name))

        return StoredPayload(
            payload_ref=str(payload_path.relative_to(self.base_path)),
            size_bytes=written,
        )

    def _write_metadata(self, metadata_path: Path, token: str,
                        metadata: ObjectMetadata, size_bytes: int) -> None:
        document = dict(metadata.to_dict(), token=token, size_bytes=size_bytes)
        fd, temp_name = tempfile.mkstemp(
            dir=metadata_path.parent, prefix=f"{token}.meta.", suffix=PARTIAL_SUFFIX
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
            os.replace(temp_name, metadata_path)
        finally:
            self._remove_quietly(Path(temp_name))

    def get(self, token: str) -> Optional[BinaryIO]:
        """
        Open the payload for streaming.

        Returns:
            Open binary file if found, None if no payload exists

        Raises:
            StorageUnavailableError: If the payload exists but cannot be opened
        """
        payload_path, _ = self._paths(token)
        try:
            return open(payload_path, "rb")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailableError(f"Failed to open payload: {e}", e) from e

    def delete(self, token: str) -> bool:
        """
        Delete payload and sidecar. Idempotent.

        Space is released before this returns.

        Raises:
            StorageUnavailableError: If the payload cannot be removed
        """
        payload_path, metadata_path = self._paths(token)
        try:
            size = payload_path.stat().st_size
        except FileNotFoundError:
            size = None
        except OSError as e:
            raise StorageUnavailableError(f"Failed to stat payload: {e}", e) from e

        try:
            payload_path.unlink(missing_ok=True)
            metadata_path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to delete payload: {e}", e) from e

        if size is not None:
            self._release(size)
        try:
            payload_path.parent.rmdir()
        except OSError:
            # Shard directory still holds other payloads
            pass
        return True

    def exists(self, token: str) -> bool:
        """Check if a payload is stored for token. Never raises."""
        if not AccessToken.is_valid(token):
            return False
        try:
            payload_path, _ = self._paths(token)
            return payload_path.is_file()
        except OSError:
            return False

    def list_payloads(self) -> List[PayloadListing]:
        """Inventory of payload files currently on disk."""
        listings = []
        for payload in self.base_path.glob(f"*/*{PAYLOAD_SUFFIX}"):
            token = payload.name[: -len(PAYLOAD_SUFFIX)]
            if not AccessToken.is_valid(token):
                continue
            try:
                mtime = payload.stat().st_mtime
            except OSError:
                continue
            listings.append(PayloadListing(
                token=token,
                stored_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
            ))
        return listings

    def health_check(self) -> bool:
        """Base directory exists and is writable."""
        return self.base_path.is_dir() and os.access(self.base_path, os.W_OK)

    @staticmethod
    def _remove_quietly(*paths: Path) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")
