"""
In-Memory Record Repository

Process-local implementation of ObjectRecordRepository backed by a dict and
a striped lock table.
"""

from typing import Dict, List, Optional, Tuple

from quickdrop.domain.errors import TokenCollisionError
from quickdrop.domain.object_lifecycle.entities import StoredObject
from quickdrop.domain.object_lifecycle.repositories import (
    ObjectRecordRepository,
    RecordMutator,
)
from quickdrop.domain.object_lifecycle.token_locks import TokenLockTable


class InMemoryRecordRepository(ObjectRecordRepository):
    """
    Dictionary of immutable StoredObject snapshots.

    Every read-modify-write holds the token's stripe lock, so updates to one
    token are linearizable while other tokens proceed on other stripes.
    Snapshot replacement is a single dict assignment, so readers never see a
    half-updated record.
    """

    def __init__(self, lock_stripes: int = 64):
        self._records: Dict[str, StoredObject] = {}
        self._locks = TokenLockTable(lock_stripes)

    def insert(self, record: StoredObject) -> None:
        with self._locks.hold(record.token):
            if record.token in self._records:
                raise TokenCollisionError(f"Record already exists for token {record.token[:8]}")
            self._records[record.token] = record

    def get(self, token: str) -> Optional[StoredObject]:
        return self._records.get(token)

    def update(self, token: str, mutator: RecordMutator
               ) -> Tuple[Optional[StoredObject], Optional[StoredObject]]:
        with self._locks.hold(token):
            before = self._records.get(token)
            after = mutator(before)
            if after is None:
                return before, before
            if after.token != token:
                raise ValueError("Mutator changed the record token")
            self._records[token] = after
            return before, after

    def delete(self, token: str) -> bool:
        with self._locks.hold(token):
            return self._records.pop(token, None) is not None

    def list_all(self) -> List[StoredObject]:
        return list(self._records.copy().values())

    def __len__(self) -> int:
        return len(self._records)
