"""
In-Memory Object Store

IObjectStore implementation that keeps payloads in process memory.
Intended for development and tests; nothing survives a restart.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from typing import BinaryIO, Dict, List, Optional

from quickdrop.domain.errors import StorageFullError, TokenCollisionError
from quickdrop.domain.file_storage.object_store import (
    IObjectStore,
    PayloadListing,
    StoredPayload,
)
from quickdrop.domain.object_lifecycle.entities import ObjectMetadata

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class _Entry:
    data: bytes
    metadata: ObjectMetadata
    stored_at: datetime


class MemoryObjectStore(IObjectStore):
    """Dictionary-backed object store with an optional capacity limit."""

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes
        self._entries: Dict[str, _Entry] = {}
        self._used_bytes = 0
        self._lock = threading.Lock()

    @property
    def used_bytes(self) -> int:
        with self._lock:
            return self._used_bytes

    def put(self, token: str, content: BinaryIO, metadata: ObjectMetadata) -> StoredPayload:
        with self._lock:
            if token in self._entries:
                raise TokenCollisionError(f"Payload already stored for token {token[:8]}")

        buffer = bytearray()
        while True:
            chunk = content.read(CHUNK_SIZE)
            if not chunk:
                break
            buffer.extend(chunk)
            if self.max_bytes is not None and self.used_bytes + len(buffer) > self.max_bytes:
                raise StorageFullError(f"Storage capacity of {self.max_bytes} bytes exhausted")

        with self._lock:
            if token in self._entries:
                raise TokenCollisionError(f"Payload already stored for token {token[:8]}")
            if self.max_bytes is not None and self._used_bytes + len(buffer) > self.max_bytes:
                raise StorageFullError(f"Storage capacity of {self.max_bytes} bytes exhausted")
            self._entries[token] = _Entry(
                data=bytes(buffer),
                metadata=metadata,
                stored_at=datetime.now(timezone.utc),
            )
            self._used_bytes += len(buffer)

        return StoredPayload(payload_ref=f"memory:{token}", size_bytes=len(buffer))

    def get(self, token: str) -> Optional[BinaryIO]:
        with self._lock:
            entry = self._entries.get(token)
        if entry is None:
            return None
        return BytesIO(entry.data)

    def delete(self, token: str) -> bool:
        with self._lock:
            entry = self._entries.pop(token, None)
            if entry is not None:
                self._used_bytes -= len(entry.data)
        return True

    def exists(self, token: str) -> bool:
        with self._lock:
            return token in self._entries

    def list_payloads(self) -> List[PayloadListing]:
        with self._lock:
            return [
                PayloadListing(token=token, stored_at=entry.stored_at)
                for token, entry in self._entries.items()
            ]
