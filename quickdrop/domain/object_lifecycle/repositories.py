"""
Object Record Repositories

Repository interface for the token -> StoredObject record map.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from .entities import StoredObject

# Receives the current snapshot (None if absent) and returns the replacement,
# or None to leave the record untouched. Must be a pure function of its input:
# optimistic implementations may call it more than once.
RecordMutator = Callable[[Optional[StoredObject]], Optional[StoredObject]]


class ObjectRecordRepository(ABC):
    """
    Abstract repository for stored-object records.

    The record map is the only shared mutable state in the service. All
    implementations must make update() an atomic read-modify-write scoped to
    a single token, and must not serialize operations on unrelated tokens.
    """

    @abstractmethod
    def insert(self, record: StoredObject) -> None:
        """
        Insert a new record.

        Args:
            record: Record to insert

        Raises:
            TokenCollisionError: If a record already exists for the token
            StorageUnavailableError: If the backing store cannot be reached
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, token: str) -> Optional[StoredObject]:
        """
        Retrieve a record snapshot by token.

        Args:
            token: Access token

        Returns:
            StoredObject if found, None otherwise
        """
        pass  # pragma: no cover

    @abstractmethod
    def update(self, token: str, mutator: RecordMutator
               ) -> Tuple[Optional[StoredObject], Optional[StoredObject]]:
        """
        Atomically apply mutator to the record for token.

        Args:
            token: Access token
            mutator: Pure function from current snapshot to replacement

        Returns:
            Tuple of (snapshot before, snapshot after). When the mutator
            returns None, after equals before.
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, token: str) -> bool:
        """
        Delete a record.

        Args:
            token: Access token

        Returns:
            True if a record was removed, False if none existed
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_all(self) -> List[StoredObject]:
        """
        Snapshot of every record currently held.

        Returns:
            List of StoredObject snapshots (order unspecified)
        """
        pass  # pragma: no cover

    def exists(self, token: str) -> bool:
        """Check if a record exists for token."""
        return self.get(token) is not None

    def close(self) -> None:
        """Release backend resources."""
        return None
