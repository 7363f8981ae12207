"""
Object Lifecycle Services

The lifecycle manager owns the per-object state machine:

    ACTIVE --retrieval limit reached--> CONSUMED --purge--> PURGED
    ACTIVE --time to live elapsed-----> EXPIRED  --purge--> PURGED

A Consumed object loses its bytes as soon as the final retrieval is closed,
but its record stays until expires_at and the reaper purges it afterwards.

Every mutation of a record goes through one of its operations, each of which
runs inside the token's critical section (a striped in-process lock plus the
repository's atomic read-modify-write), so consumption, expiry and purge of
the same token are totally ordered while unrelated tokens proceed in parallel.
"""

import functools
import io
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import BinaryIO, Callable, Iterator, List, Optional, Union

from ..errors import DomainError, ServiceShuttingDownError, TokenCollisionError
from ..events import (
    ConsumptionDeniedEvent,
    DomainEvent,
    ObjectConsumedEvent,
    ObjectExpiredEvent,
    ObjectPurgedEvent,
    ObjectRegisteredEvent,
)
from ..file_storage.object_store import IObjectStore
from .entities import ObjectMetadata, StoredObject, utcnow
from .repositories import ObjectRecordRepository
from .token_generator import TokenGenerator
from .token_locks import TokenLockTable
from .value_objects import AccessToken, DenialReason, ObjectState, ObjectStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Denied:
    """A refused consumption attempt."""
    reason: DenialReason


class PayloadStream(io.RawIOBase):
    """
    Read-only view over an object store stream.

    Runs an optional callback exactly once when closed; the lifecycle manager
    uses it to drop the bytes after the final retrieval has been streamed.
    """

    def __init__(self, raw: BinaryIO, size: Optional[int] = None,
                 on_close: Optional[Callable[[], None]] = None):
        super().__init__()
        self._raw = raw
        self.size = size
        self._on_close = on_close

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._raw.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.close()
        finally:
            super().close()
            callback, self._on_close = self._on_close, None
            if callback is not None:
                callback()


@dataclass(frozen=True)
class ConsumeResult:
    """A granted retrieval: the record snapshot after counting it, and the bytes."""
    record: StoredObject
    payload: PayloadStream


class LifecycleManager:
    """
    Domain service coordinating registration, consumption, expiry and purge.

    Created at service start with its record repository and object store and
    drained with shutdown() before those are closed.
    """

    def __init__(self, record_repository: ObjectRecordRepository,
                 object_store: IObjectStore,
                 token_generator: Optional[TokenGenerator] = None,
                 event_publisher=None,
                 clock: Optional[Clock] = None,
                 lock_stripes: int = 256):
        """
        Initialize LifecycleManager.

        Args:
            record_repository: Token -> record map
            object_store: Payload byte storage
            token_generator: Token source (default TokenGenerator())
            event_publisher: Optional EventPublisher for domain events
            clock: Callable returning the current aware UTC datetime
            lock_stripes: Number of stripes in the per-token lock table
        """
        self.records = record_repository
        self.store = object_store
        self.token_generator = token_generator or TokenGenerator()
        self.event_publisher = event_publisher
        self._clock = clock or utcnow
        self._locks = TokenLockTable(lock_stripes)

        self._inflight = 0
        self._closing = False
        self._drained = threading.Condition()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def register(self, content: BinaryIO, metadata: ObjectMetadata,
                 ttl: timedelta, max_retrievals: int = 1) -> StoredObject:
        """
        Store an upload and create its Active record.

        The bytes are written in full before the record exists, so a failed
        or aborted upload never yields a token.

        Args:
            content: Binary stream with the upload
            metadata: Original filename and content type
            ttl: Time to live
            max_retrievals: Number of permitted downloads

        Returns:
            The new StoredObject

        Raises:
            StorageFullError: If the object store is out of space
            StorageUnavailableError: If storage cannot be written
            TokenCollisionError: If the generated token is already in use
            ValueError: If ttl or max_retrievals are out of range
        """
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        if max_retrievals < 1:
            raise ValueError(f"max_retrievals must be >= 1, got {max_retrievals}")

        with self._operation():
            token = self.token_generator.generate()
            if self.records.exists(token) or self.store.exists(token):
                raise TokenCollisionError(f"Token {token[:8]} already issued")

            # The token is unpublished until insert, so the upload itself runs
            # outside the stripe lock.
            stored = self.store.put(token, content, metadata)
            record = StoredObject.create(
                token=token,
                payload_ref=stored.payload_ref,
                size_bytes=stored.size_bytes,
                metadata=metadata,
                ttl=ttl,
                max_retrievals=max_retrievals,
                now=self._clock(),
            )
            try:
                with self._locks.hold(token):
                    self.records.insert(record)
            except Exception:
                self._discard_payload(token)
                raise

        self._publish(ObjectRegisteredEvent(
            aggregate_id=token[:8],
            occurred_at=record.created_at,
            size_bytes=record.size_bytes,
            expires_at=record.expires_at,
            max_retrievals=record.max_retrievals,
        ))
        return record

    def try_consume(self, token: str) -> Union[ConsumeResult, Denied]:
        """
        Attempt one counted retrieval.

        The decision is a single atomic step per token: at most
        max_retrievals callers ever receive the payload. The payload stream is
        opened inside the critical section but read by the caller afterwards.

        Args:
            token: Access token

        Returns:
            ConsumeResult on success, Denied with the internal reason otherwise
        """
        if not AccessToken.is_valid(token):
            return self._deny(token, DenialReason.NOT_FOUND)

        with self._operation():
            with self._locks.hold(token):
                now = self._clock()
                current = self.records.get(token)

                payload = None
                if current is not None and current.is_retrievable(now):
                    payload = self.store.get(token)
                    if payload is None:
                        logger.error(f"Payload missing for active object {token[:8]}, purging record")
                        self._purge_quietly(token)
                        return self._deny(token, DenialReason.NOT_FOUND)

                before, after = self.records.update(
                    token, lambda record: self._next_on_consume(record, now)
                )
                reason = self._denial_reason(before, after)

                if reason is not None:
                    if payload is not None:
                        payload.close()
                    if reason is DenialReason.EXPIRED and before.state is ObjectState.ACTIVE:
                        self._publish(ObjectExpiredEvent(
                            aggregate_id=token[:8], occurred_at=now, detected_by="access",
                        ))
                        self._purge_quietly(token)
                    return self._deny(token, reason)

        self._publish(ObjectConsumedEvent(
            aggregate_id=token[:8],
            occurred_at=now,
            retrieval_count=after.retrieval_count,
            max_retrievals=after.max_retrievals,
        ))

        on_close = None
        if after.state is ObjectState.CONSUMED:
            on_close = functools.partial(self._release_after_read, token)
        return ConsumeResult(
            record=after,
            payload=PayloadStream(payload, size=after.size_bytes, on_close=on_close),
        )

    def status(self, token: str) -> ObjectStatus:
        """
        Read-only liveness check used by pollers.

        Args:
            token: Access token

        Returns:
            ObjectStatus.ACTIVE or ObjectStatus.GONE
        """
        if not AccessToken.is_valid(token):
            return ObjectStatus.GONE
        record = self.records.get(token)
        if record is not None and record.is_retrievable(self._clock()):
            return ObjectStatus.ACTIVE
        return ObjectStatus.GONE

    def purge(self, token: str) -> bool:
        """
        Destroy an object's bytes and record.

        Idempotent: unknown or already purged tokens are a no-op. An Active
        object is expired first, so the state machine is respected.

        Args:
            token: Access token

        Returns:
            True if this call destroyed the object, False if nothing was left
        """
        if not AccessToken.is_valid(token):
            return False
        with self._locks.hold(token):
            return self._purge_locked(token)

    def expire_if_due(self, token: str) -> bool:
        """
        Move an Active object past its deadline to EXPIRED.

        Args:
            token: Access token

        Returns:
            True if this call performed the transition
        """
        if not AccessToken.is_valid(token):
            return False
        with self._locks.hold(token):
            now = self._clock()

            def _expire(record):
                if record is not None and record.state is ObjectState.ACTIVE and record.is_expired(now):
                    return record.transition_to(ObjectState.EXPIRED)
                return None

            before, after = self.records.update(token, _expire)

        if before is not None and after is not None and after.state is not before.state:
            self._publish(ObjectExpiredEvent(
                aggregate_id=token[:8], occurred_at=now, detected_by="reaper",
            ))
            return True
        return False

    def purge_orphans(self, older_than: timedelta) -> int:
        """
        Delete stored payloads that have no record.

        Only payloads older than the grace period are considered, so uploads
        whose record is about to be inserted are left alone.

        Args:
            older_than: Minimum payload age

        Returns:
            Number of payloads deleted
        """
        cutoff = self._clock() - older_than
        count = 0
        for listing in self.store.list_payloads():
            if listing.stored_at > cutoff:
                continue
            with self._locks.hold(listing.token):
                if self.records.exists(listing.token):
                    continue
                self.store.delete(listing.token)
            logger.info(f"Removed orphaned payload {listing.token[:8]}")
            count += 1
        return count

    def snapshot(self) -> List[StoredObject]:
        """Read-only copies of every record, for sweeps and diagnostics."""
        return self.records.list_all()

    def inspect(self, token: str) -> Optional[StoredObject]:
        """Precise internal record for a token. Never exposed to clients."""
        if not AccessToken.is_valid(token):
            return None
        return self.records.get(token)

    def now(self) -> datetime:
        """Current time according to the manager's clock."""
        return self._clock()

    def shutdown(self, timeout: Optional[float] = 30.0) -> bool:
        """
        Stop accepting registrations and consumptions and wait for
        in-flight ones to finish.

        Args:
            timeout: Seconds to wait, None for no limit

        Returns:
            True if all in-flight operations drained
        """
        with self._drained:
            self._closing = True
            drained = self._drained.wait_for(lambda: self._inflight == 0, timeout)
        if not drained:
            logger.warning(f"Shutdown timed out with {self._inflight} operations in flight")
        return drained

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self) -> Iterator[None]:
        with self._drained:
            if self._closing:
                raise ServiceShuttingDownError("Lifecycle manager is shutting down")
            self._inflight += 1
        try:
            yield
        finally:
            with self._drained:
                self._inflight -= 1
                if self._inflight == 0:
                    self._drained.notify_all()

    @staticmethod
    def _next_on_consume(record: Optional[StoredObject], now: datetime) -> Optional[StoredObject]:
        if record is None or record.state is not ObjectState.ACTIVE:
            return None
        if record.is_expired(now):
            return record.transition_to(ObjectState.EXPIRED)
        return record.record_retrieval()

    @staticmethod
    def _denial_reason(before: Optional[StoredObject],
                       after: Optional[StoredObject]) -> Optional[DenialReason]:
        if before is None or before.state is ObjectState.PURGED:
            return DenialReason.NOT_FOUND
        if before.state is ObjectState.CONSUMED:
            return DenialReason.ALREADY_CONSUMED
        if before.state is ObjectState.EXPIRED or after.state is ObjectState.EXPIRED:
            return DenialReason.EXPIRED
        return None

    def _purge_locked(self, token: str) -> bool:
        record = self.records.get(token)
        if record is None:
            return False
        if record.state is ObjectState.PURGED:
            self.records.delete(token)
            return False

        if record.state is ObjectState.ACTIVE:
            self.records.update(
                token,
                lambda r: r.transition_to(ObjectState.EXPIRED)
                if r is not None and r.state is ObjectState.ACTIVE else None,
            )

        # Bytes go first: if deletion fails the record stays terminal and the
        # next sweep retries.
        self.store.delete(token)
        self.records.update(
            token,
            lambda r: r.transition_to(ObjectState.PURGED)
            if r is not None and r.state.can_transition_to(ObjectState.PURGED) else None,
        )
        self.records.delete(token)

        self._publish(ObjectPurgedEvent(
            aggregate_id=token[:8],
            occurred_at=self._clock(),
            previous_state=record.state.value,
        ))
        return True

    def _purge_quietly(self, token: str) -> None:
        try:
            self._purge_locked(token)
        except DomainError as e:
            logger.warning(f"Purge of {token[:8]} failed, leaving it to the reaper: {e}")

    def _release_after_read(self, token: str) -> None:
        # The Consumed record outlives its bytes until expires_at so further
        # attempts keep reporting ALREADY_CONSUMED; the reaper purges it.
        try:
            with self._locks.hold(token):
                record = self.records.get(token)
                if record is not None and record.state is ObjectState.CONSUMED:
                    self.store.delete(token)
                    logger.debug(f"Released payload of consumed object {token[:8]}")
        except DomainError as e:
            logger.warning(f"Deferred payload release of {token[:8]} failed, leaving it to the reaper: {e}")

    def _discard_payload(self, token: str) -> None:
        try:
            self.store.delete(token)
        except DomainError as e:
            logger.error(f"Could not discard payload {token[:8]} after failed registration: {e}")

    def _deny(self, token, reason: DenialReason) -> Denied:
        short = token[:8] if isinstance(token, str) else "?"
        self._publish(ConsumptionDeniedEvent(
            aggregate_id=short, occurred_at=self._clock(), reason=reason.value,
        ))
        return Denied(reason)

    def _publish(self, event: DomainEvent) -> None:
        if self.event_publisher is not None:
            self.event_publisher.publish(event)
