"""
Redis Record Repository

Redis-backed implementation of ObjectRecordRepository. Records are stored as
JSON under ``object:<token>`` and outlive their expiry by a grace period so
the reaper still sees them and can purge the payload bytes.
"""

import logging
from typing import List, Optional, Tuple

from quickdrop.domain.errors import TokenCollisionError
from quickdrop.domain.object_lifecycle.entities import StoredObject, utcnow
from quickdrop.domain.object_lifecycle.repositories import (
    ObjectRecordRepository,
    RecordMutator,
)

from .redis_repository import RedisRepository

logger = logging.getLogger(__name__)

KEY_PATTERN = "object:*"


class RedisRecordRepository(ObjectRecordRepository):
    """
    Record map shared between processes through Redis.

    insert() is SET NX so two registrations can never own one token, and
    update() runs inside WATCH/MULTI so concurrent consumers from any process
    see a linearizable retrieval counter.
    """

    def __init__(self, redis_repo: RedisRepository, record_grace_seconds: int = 3600):
        self.redis_repo = redis_repo
        self.record_grace_seconds = record_grace_seconds

    @staticmethod
    def _key(token: str) -> str:
        return f"object:{token}"

    def _key_ttl(self, record: StoredObject) -> int:
        remaining = record.get_remaining_seconds(utcnow())
        return max(1, remaining + self.record_grace_seconds)

    def insert(self, record: StoredObject) -> None:
        created = self.redis_repo.set_json_if_absent(
            self._key(record.token), record.to_dict(), ttl=self._key_ttl(record)
        )
        if not created:
            raise TokenCollisionError(f"Record already exists for token {record.token[:8]}")

    def get(self, token: str) -> Optional[StoredObject]:
        data = self.redis_repo.get_json(self._key(token))
        if data is None:
            return None
        return StoredObject.from_dict(data)

    def update(self, token: str, mutator: RecordMutator
               ) -> Tuple[Optional[StoredObject], Optional[StoredObject]]:
        def _apply(data):
            current = StoredObject.from_dict(data) if data is not None else None
            replacement = mutator(current)
            if replacement is None:
                return None
            if replacement.token != token:
                raise ValueError("Mutator changed the record token")
            return replacement.to_dict()

        before, after = self.redis_repo.update_json_atomic(self._key(token), _apply)
        return (
            StoredObject.from_dict(before) if before is not None else None,
            StoredObject.from_dict(after) if after is not None else None,
        )

    def delete(self, token: str) -> bool:
        return self.redis_repo.delete(self._key(token))

    def list_all(self) -> List[StoredObject]:
        keys = self.redis_repo.get_keys_by_pattern(KEY_PATTERN)
        records = []
        for data in self.redis_repo.get_many_json(keys):
            # Key may have expired between SCAN and MGET
            if data is None:
                continue
            try:
                records.append(StoredObject.from_dict(data))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed record {data.get('token', '?')[:8]}: {e}")
        return records
