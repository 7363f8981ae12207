"""
Tests for StorageFactory.
"""

import pytest

from quickdrop.infrastructure.in_memory_record_repository import InMemoryRecordRepository
from quickdrop.infrastructure.local_file_object_store import LocalFileObjectStore
from quickdrop.infrastructure.memory_object_store import MemoryObjectStore
from quickdrop.infrastructure.resilient_object_store import ResilientObjectStore
from quickdrop.infrastructure.storage_factory import StorageFactory


class TestStorageFactory:
    def test_memory_store_is_wrapped(self, transfer_config):
        store = StorageFactory.create_object_store(transfer_config)
        try:
            assert isinstance(store, ResilientObjectStore)
            assert isinstance(store.inner, MemoryObjectStore)
            assert store.timeout == transfer_config.storage_timeout_seconds
        finally:
            store.close()

    def test_local_store(self, transfer_config, tmp_path):
        transfer_config.storage_backend = "local"
        store = StorageFactory.create_object_store(transfer_config)
        try:
            assert isinstance(store.inner, LocalFileObjectStore)
            assert (tmp_path / "uploads").is_dir()
        finally:
            store.close()

    def test_unknown_backend(self, transfer_config):
        transfer_config.storage_backend = "s3"
        with pytest.raises(ValueError):
            StorageFactory.create_object_store(transfer_config)

    def test_memory_record_repository(self, transfer_config):
        repo = StorageFactory.create_record_repository(transfer_config)
        assert isinstance(repo, InMemoryRecordRepository)

    def test_unknown_record_backend(self, transfer_config):
        transfer_config.record_backend = "sqlite"
        with pytest.raises(ValueError):
            StorageFactory.create_record_repository(transfer_config)
