"""
Object Store Interface

Abstract interface for payload byte storage. The object store is the
exclusive owner of storage media: the lifecycle manager only ever talks to
it through this contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, BinaryIO, List, Optional

if TYPE_CHECKING:
    from ..object_lifecycle.entities import ObjectMetadata


@dataclass(frozen=True)
class StoredPayload:
    """Result of a successful put()."""
    payload_ref: str
    size_bytes: int


@dataclass(frozen=True)
class PayloadListing:
    """One payload held by the store, as seen by an inventory scan."""
    token: str
    stored_at: datetime


class IObjectStore(ABC):
    """
    Unified interface for payload storage.

    Contract Guarantees:
    - put() is write-once per token and all-or-nothing: a failed or aborted
      write leaves nothing behind
    - get() returns None for unknown tokens (no exceptions)
    - delete() is idempotent and has released the bytes when it returns
    - Implementations must be thread-safe

    Errors:
    - StorageFullError when capacity is exhausted
    - StorageUnavailableError on I/O failure
    - TokenCollisionError on a second put() for the same token
    """

    @abstractmethod
    def put(self, token: str, content: BinaryIO, metadata: "ObjectMetadata") -> StoredPayload:
        """
        Store the full content stream under token.

        Args:
            token: Access token the payload belongs to
            content: Binary stream positioned at the start of the payload
            metadata: Original filename and content type

        Returns:
            StoredPayload describing the stored bytes

        Raises:
            StorageFullError: If the payload does not fit
            StorageUnavailableError: If the write fails
            TokenCollisionError: If bytes already exist for token
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, token: str) -> Optional[BinaryIO]:
        """
        Open the payload for reading.

        The caller is responsible for closing the returned stream.

        Args:
            token: Access token

        Returns:
            Binary stream if found, None otherwise
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, token: str) -> bool:
        """
        Delete the payload for token.

        Args:
            token: Access token

        Returns:
            True once the payload is gone (including if it never existed)

        Raises:
            StorageUnavailableError: If the bytes could not be removed
        """
        pass  # pragma: no cover

    @abstractmethod
    def exists(self, token: str) -> bool:
        """Check if a payload is stored for token. Never raises."""
        pass  # pragma: no cover

    @abstractmethod
    def list_payloads(self) -> List[PayloadListing]:
        """
        Inventory of stored payloads.

        Returns:
            List of PayloadListing entries
        """
        pass  # pragma: no cover

    def health_check(self) -> bool:
        """Return True if the store can currently accept writes."""
        return True

    def close(self) -> None:
        """Release resources held by the store."""
        return None
