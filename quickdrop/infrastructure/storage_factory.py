"""
Storage Factory

Factory for creating the object store and record repository selected by
configuration. The domain stays decoupled from the concrete implementations
through the IObjectStore and ObjectRecordRepository interfaces.
"""

import logging

from quickdrop.config.transfer_config import TransferConfig
from quickdrop.domain.file_storage.object_store import IObjectStore
from quickdrop.domain.object_lifecycle.repositories import ObjectRecordRepository

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory that builds storage components from TransferConfig."""

    @staticmethod
    def create_object_store(config: TransferConfig) -> IObjectStore:
        """
        Create the object store, wrapped with timeouts and retry.

        Args:
            config: Transfer configuration

        Returns:
            IObjectStore implementation

        Raises:
            ValueError: If STORAGE_BACKEND is unknown
        """
        backend = config.storage_backend
        if backend == "local":
            from quickdrop.infrastructure.local_file_object_store import LocalFileObjectStore

            inner = LocalFileObjectStore(config.storage_dir, max_bytes=config.storage_max_bytes)
            logger.info(f"Storage factory: using local filesystem storage at {config.storage_dir}")
        elif backend == "memory":
            from quickdrop.infrastructure.memory_object_store import MemoryObjectStore

            inner = MemoryObjectStore(max_bytes=config.storage_max_bytes)
            logger.info("Storage factory: using in-memory storage")
        else:
            raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")

        from quickdrop.infrastructure.resilient_object_store import ResilientObjectStore

        return ResilientObjectStore(
            inner,
            timeout=config.storage_timeout_seconds,
            retry_backoff=config.storage_retry_backoff_seconds,
        )

    @staticmethod
    def create_record_repository(config: TransferConfig) -> ObjectRecordRepository:
        """
        Create the record repository.

        Args:
            config: Transfer configuration

        Returns:
            ObjectRecordRepository implementation

        Raises:
            ValueError: If RECORD_BACKEND is unknown
        """
        backend = config.record_backend
        if backend == "memory":
            from quickdrop.infrastructure.in_memory_record_repository import InMemoryRecordRepository

            logger.info("Storage factory: using in-memory record map")
            return InMemoryRecordRepository()
        if backend == "redis":
            from quickdrop.config.redis_config import get_redis_repository
            from quickdrop.infrastructure.redis_record_repository import RedisRecordRepository

            logger.info("Storage factory: using Redis record map")
            return RedisRecordRepository(
                get_redis_repository(), record_grace_seconds=config.orphan_grace_seconds
            )
        raise ValueError(f"Unknown RECORD_BACKEND: {backend}")
