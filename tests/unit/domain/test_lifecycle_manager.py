"""
Tests for LifecycleManager: registration, consumption, expiry, purge and
shutdown.
"""

import io
import threading
from datetime import timedelta
from unittest.mock import Mock

import pytest

from quickdrop.domain.errors import (
    ServiceShuttingDownError,
    StorageFullError,
    StorageUnavailableError,
    TokenCollisionError,
)
from quickdrop.domain.events import (
    ConsumptionDeniedEvent,
    ObjectConsumedEvent,
    ObjectExpiredEvent,
    ObjectPurgedEvent,
    ObjectRegisteredEvent,
)
from quickdrop.domain.object_lifecycle.entities import ObjectMetadata
from quickdrop.domain.object_lifecycle.services import (
    ConsumeResult,
    Denied,
    LifecycleManager,
    PayloadStream,
)
from quickdrop.domain.object_lifecycle.value_objects import (
    DenialReason,
    ObjectState,
    ObjectStatus,
)
from quickdrop.infrastructure.in_memory_record_repository import InMemoryRecordRepository
from quickdrop.infrastructure.memory_object_store import MemoryObjectStore
from tests.fixtures.assertion_helpers import assert_gone, assert_spent
from tests.fixtures.domain_fixtures import create_stored_object, make_token
from tests.fixtures.mock_repositories import FailingObjectStore, SlowObjectStore

PAYLOAD = b"hello"
METADATA = ObjectMetadata("hello.txt", "text/plain")


def register(manager, data=PAYLOAD, ttl=60, max_retrievals=1):
    return manager.register(
        io.BytesIO(data), METADATA, ttl=timedelta(seconds=ttl), max_retrievals=max_retrievals
    )


class TestRegister:
    def test_stores_bytes_and_active_record(self, manager, object_store, fake_clock):
        record = register(manager)

        assert record.state is ObjectState.ACTIVE
        assert record.size_bytes == len(PAYLOAD)
        assert record.created_at == fake_clock()
        assert record.expires_at == fake_clock() + timedelta(seconds=60)
        assert object_store.exists(record.token)
        assert manager.inspect(record.token) == record
        assert manager.status(record.token) is ObjectStatus.ACTIVE

    def test_publishes_registered_event(self, manager, event_publisher):
        record = register(manager, max_retrievals=2)
        events = event_publisher.of_type(ObjectRegisteredEvent)
        assert len(events) == 1
        assert events[0].aggregate_id == record.token[:8]
        assert events[0].max_retrievals == 2

    def test_each_registration_gets_a_new_token(self, manager):
        tokens = {register(manager).token for _ in range(20)}
        assert len(tokens) == 20

    @pytest.mark.parametrize("ttl,max_retrievals", [(0, 1), (-5, 1), (60, 0)])
    def test_rejects_invalid_options(self, manager, object_store, ttl, max_retrievals):
        with pytest.raises(ValueError):
            register(manager, ttl=ttl, max_retrievals=max_retrievals)
        assert object_store.list_payloads() == []

    def test_storage_full_leaves_nothing_behind(self, record_repository, fake_clock):
        store = MemoryObjectStore(max_bytes=3)
        manager = LifecycleManager(record_repository, store, clock=fake_clock)

        with pytest.raises(StorageFullError):
            register(manager)

        assert record_repository.list_all() == []
        assert store.list_payloads() == []
        assert store.used_bytes == 0

    def test_storage_unavailable_leaves_nothing_behind(self, record_repository, fake_clock):
        store = FailingObjectStore(fail_on=("put",))
        manager = LifecycleManager(record_repository, store, clock=fake_clock)

        with pytest.raises(StorageUnavailableError):
            register(manager)

        assert record_repository.list_all() == []
        assert store.list_payloads() == []

    def test_failed_record_insert_discards_payload(self, object_store, fake_clock):
        records = Mock(wraps=InMemoryRecordRepository())
        records.insert.side_effect = StorageUnavailableError("redis down")
        manager = LifecycleManager(records, object_store, clock=fake_clock)

        with pytest.raises(StorageUnavailableError):
            register(manager)

        assert object_store.list_payloads() == []

    def test_token_collision_is_rejected_without_overwrite(self, manager, object_store):
        original = register(manager)
        manager.token_generator = Mock(generate=Mock(return_value=original.token))

        with pytest.raises(TokenCollisionError):
            register(manager, data=b"other bytes")

        outcome = manager.try_consume(original.token)
        assert outcome.payload.read() == PAYLOAD


class TestTryConsume:
    def test_single_use_scenario(self, manager):
        record = register(manager, max_retrievals=1)

        first = manager.try_consume(record.token)
        assert isinstance(first, ConsumeResult)
        assert first.payload.read() == PAYLOAD
        assert first.record.state is ObjectState.CONSUMED

        second = manager.try_consume(record.token)
        assert second == Denied(DenialReason.ALREADY_CONSUMED)
        assert manager.status(record.token) is ObjectStatus.GONE

        first.payload.close()
        assert_spent(manager, record.token)

    def test_three_use_scenario(self, manager):
        record = register(manager, max_retrievals=3)

        results = [manager.try_consume(record.token) for _ in range(3)]
        assert all(isinstance(r, ConsumeResult) for r in results)
        assert [r.record.retrieval_count for r in results] == [1, 2, 3]
        assert [r.payload.read() for r in results] == [PAYLOAD] * 3

        assert manager.try_consume(record.token) == Denied(DenialReason.ALREADY_CONSUMED)

        for result in results:
            result.payload.close()
        assert_spent(manager, record.token)

    def test_intermediate_retrieval_keeps_object_active(self, manager):
        record = register(manager, max_retrievals=2)

        result = manager.try_consume(record.token)
        result.payload.read()
        result.payload.close()

        assert manager.status(record.token) is ObjectStatus.ACTIVE
        assert manager.inspect(record.token).retrieval_count == 1

    def test_payload_stream_reports_size(self, manager):
        record = register(manager, data=b"x" * 1000)
        result = manager.try_consume(record.token)
        assert result.payload.size == 1000
        assert len(result.payload.read()) == 1000
        result.payload.close()

    def test_unknown_token_not_found(self, manager, event_publisher):
        assert manager.try_consume(make_token()) == Denied(DenialReason.NOT_FOUND)
        assert event_publisher.of_type(ConsumptionDeniedEvent)[0].reason == "not_found"

    @pytest.mark.parametrize("token", ["", "short", "../" * 20, None])
    def test_malformed_token_not_found(self, manager, token):
        assert manager.try_consume(token) == Denied(DenialReason.NOT_FOUND)

    def test_expired_object_is_denied_and_purged(self, manager, object_store, fake_clock,
                                                 event_publisher):
        record = register(manager, ttl=1)
        fake_clock.advance(2)

        assert manager.try_consume(record.token) == Denied(DenialReason.EXPIRED)

        expired = event_publisher.of_type(ObjectExpiredEvent)
        assert len(expired) == 1
        assert expired[0].detected_by == "access"
        assert_gone(manager, record.token)
        assert object_store.used_bytes == 0

    def test_expired_object_with_failing_delete_is_still_denied(self, record_repository,
                                                                fake_clock, caplog):
        store = FailingObjectStore(fail_on=("delete",), failures=1)
        manager = LifecycleManager(record_repository, store, clock=fake_clock)
        record = register(manager, ttl=1)
        fake_clock.advance(2)

        assert manager.try_consume(record.token) == Denied(DenialReason.EXPIRED)

        assert "leaving it to the reaper" in caplog.text
        assert record_repository.get(record.token).state is ObjectState.EXPIRED
        assert manager.try_consume(record.token) == Denied(DenialReason.EXPIRED)
        assert manager.purge(record.token) is True
        assert_gone(manager, record.token)

    def test_expiry_applies_after_partial_use(self, manager, fake_clock):
        record = register(manager, ttl=60, max_retrievals=3)
        manager.try_consume(record.token).payload.close()

        fake_clock.advance(60)

        assert manager.try_consume(record.token) == Denied(DenialReason.EXPIRED)
        assert manager.status(record.token) is ObjectStatus.GONE

    def test_missing_payload_purges_record(self, manager, record_repository):
        record = create_stored_object(created_at=manager.now())
        record_repository.insert(record)

        assert manager.try_consume(record.token) == Denied(DenialReason.NOT_FOUND)
        assert record_repository.get(record.token) is None

    def test_publishes_consumed_event(self, manager, event_publisher):
        record = register(manager, max_retrievals=2)
        manager.try_consume(record.token).payload.close()

        events = event_publisher.of_type(ObjectConsumedEvent)
        assert len(events) == 1
        assert events[0].retrieval_count == 1
        assert not events[0].exhausted

    def test_denial_is_stable(self, manager):
        record = register(manager)
        result = manager.try_consume(record.token)
        outcomes = {manager.try_consume(record.token) for _ in range(5)}
        assert outcomes == {Denied(DenialReason.ALREADY_CONSUMED)}
        result.payload.close()


class TestStatus:
    def test_ttl_boundary_without_downloads(self, manager, fake_clock):
        record = register(manager, ttl=60, max_retrievals=5)
        fake_clock.advance(59)
        assert manager.status(record.token) is ObjectStatus.ACTIVE
        fake_clock.advance(1)
        assert manager.status(record.token) is ObjectStatus.GONE

    def test_ttl_boundary_with_downloads(self, manager, fake_clock):
        record = register(manager, ttl=60, max_retrievals=5)
        manager.try_consume(record.token).payload.close()
        fake_clock.advance(30)
        manager.try_consume(record.token).payload.close()
        assert manager.status(record.token) is ObjectStatus.ACTIVE
        fake_clock.advance(30)
        assert manager.status(record.token) is ObjectStatus.GONE

    def test_status_does_not_count_as_retrieval(self, manager):
        record = register(manager)
        for _ in range(10):
            assert manager.status(record.token) is ObjectStatus.ACTIVE
        assert manager.inspect(record.token).retrieval_count == 0

    @pytest.mark.parametrize("token", [None, "", "nope", "a" * 43])
    def test_unknown_tokens_are_gone(self, manager, token):
        assert manager.status(token) is ObjectStatus.GONE


class TestPurge:
    def test_purge_is_idempotent(self, manager, event_publisher):
        record = register(manager)

        assert manager.purge(record.token) is True
        assert manager.purge(record.token) is False

        assert_gone(manager, record.token)
        purged = event_publisher.of_type(ObjectPurgedEvent)
        assert len(purged) == 1
        assert purged[0].previous_state == "active"

    def test_purge_of_active_object_passes_through_expired(self, record_repository, fake_clock):
        store = FailingObjectStore(fail_on=("delete",), failures=1)
        manager = LifecycleManager(record_repository, store, clock=fake_clock)
        record = register(manager)

        with pytest.raises(StorageUnavailableError):
            manager.purge(record.token)

        # Bytes could not be deleted: the record stays terminal for the next sweep
        assert record_repository.get(record.token).state is ObjectState.EXPIRED
        assert manager.status(record.token) is ObjectStatus.GONE

        assert manager.purge(record.token) is True
        assert_gone(manager, record.token)

    def test_purge_of_unknown_token_touches_nothing(self, record_repository, fake_clock):
        store = FailingObjectStore(fail_on=())
        manager = LifecycleManager(record_repository, store, clock=fake_clock)

        assert manager.purge(make_token()) is False
        assert manager.purge("../../etc") is False
        assert store.calls["delete"] == 0

    def test_final_read_releases_bytes_on_close(self, manager, object_store):
        record = register(manager)
        result = manager.try_consume(record.token)

        assert object_store.exists(record.token)
        assert result.payload.read() == PAYLOAD
        result.payload.close()

        assert_spent(manager, record.token)
        assert object_store.used_bytes == 0

    def test_context_manager_close_releases_bytes(self, manager):
        record = register(manager)
        with manager.try_consume(record.token).payload as stream:
            assert stream.read() == PAYLOAD
        assert_spent(manager, record.token)

    def test_consumed_record_is_purged_explicitly(self, manager, event_publisher):
        record = register(manager)
        manager.try_consume(record.token).payload.close()

        assert manager.purge(record.token) is True

        assert_gone(manager, record.token)
        assert event_publisher.of_type(ObjectPurgedEvent)[0].previous_state == "consumed"

    def test_deferred_release_failure_is_logged_not_raised(self, record_repository, fake_clock,
                                                           caplog):
        store = FailingObjectStore(fail_on=("delete",), failures=1)
        manager = LifecycleManager(record_repository, store, clock=fake_clock)
        record = register(manager)

        manager.try_consume(record.token).payload.close()

        assert "leaving it to the reaper" in caplog.text
        assert record_repository.get(record.token).state is ObjectState.CONSUMED
        assert manager.try_consume(record.token) == Denied(DenialReason.ALREADY_CONSUMED)
        assert manager.purge(record.token) is True


class TestExpireIfDue:
    def test_only_expires_past_deadline(self, manager, fake_clock, event_publisher):
        record = register(manager, ttl=10)

        assert manager.expire_if_due(record.token) is False
        fake_clock.advance(10)
        assert manager.expire_if_due(record.token) is True
        assert manager.expire_if_due(record.token) is False

        assert manager.inspect(record.token).state is ObjectState.EXPIRED
        assert event_publisher.of_type(ObjectExpiredEvent)[0].detected_by == "reaper"

    def test_ignores_consumed_objects(self, manager, fake_clock):
        record = register(manager, ttl=10)
        result = manager.try_consume(record.token)
        fake_clock.advance(20)

        assert manager.expire_if_due(record.token) is False
        assert manager.inspect(record.token).state is ObjectState.CONSUMED
        result.payload.close()

    def test_unknown_token(self, manager):
        assert manager.expire_if_due(make_token()) is False


class TestPurgeOrphans:
    def test_removes_only_payloads_without_records(self, record_repository, object_store):
        manager = LifecycleManager(record_repository, object_store)
        kept = register(manager)
        orphan = make_token()
        object_store.put(orphan, io.BytesIO(b"left behind"), METADATA)

        assert manager.purge_orphans(timedelta(0)) == 1

        assert not object_store.exists(orphan)
        assert object_store.exists(kept.token)

    def test_grace_period_protects_recent_payloads(self, record_repository, object_store):
        manager = LifecycleManager(record_repository, object_store)
        orphan = make_token()
        object_store.put(orphan, io.BytesIO(b"fresh"), METADATA)

        assert manager.purge_orphans(timedelta(hours=1)) == 0
        assert object_store.exists(orphan)


class TestShutdown:
    def test_rejects_operations_after_shutdown(self, manager):
        record = register(manager)
        assert manager.shutdown(timeout=1) is True

        with pytest.raises(ServiceShuttingDownError):
            register(manager)
        with pytest.raises(ServiceShuttingDownError):
            manager.try_consume(record.token)

    def test_waits_for_in_flight_registration(self, record_repository, fake_clock):
        store = SlowObjectStore()
        manager = LifecycleManager(record_repository, store, clock=fake_clock)
        worker = threading.Thread(target=register, args=(manager,))
        worker.start()
        assert store.entered.wait(2)

        assert manager.shutdown(timeout=0.05) is False

        store.release.set()
        worker.join(5)
        assert manager.shutdown(timeout=1) is True
        assert len(record_repository.list_all()) == 1


class TestPayloadStream:
    def test_callback_runs_once(self):
        callback = Mock()
        stream = PayloadStream(io.BytesIO(b"data"), size=4, on_close=callback)
        assert stream.read() == b"data"
        stream.close()
        stream.close()
        callback.assert_called_once_with()

    def test_closes_underlying_stream(self):
        raw = io.BytesIO(b"data")
        PayloadStream(raw).close()
        assert raw.closed

    def test_is_read_only(self):
        stream = PayloadStream(io.BytesIO(b"data"))
        assert stream.readable()
        assert not stream.writable()
