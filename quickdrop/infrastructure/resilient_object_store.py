"""
Resilient Object Store

IObjectStore decorator that bounds every storage call with a timeout and
retries transient failures once with a short backoff.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import BinaryIO, Callable, List, Optional, TypeVar

from quickdrop.domain.errors import StorageUnavailableError
from quickdrop.domain.file_storage.object_store import (
    IObjectStore,
    PayloadListing,
    StoredPayload,
)
from quickdrop.domain.object_lifecycle.entities import ObjectMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResilientObjectStore(IObjectStore):
    """
    Wraps another object store with bounded waits and a single retry.

    Only StorageUnavailableError is retried; StorageFullError and
    TokenCollisionError pass straight through. A put() is retried only when
    its content stream can be rewound, and never after a timeout, because the
    abandoned attempt may still be writing.
    """

    def __init__(self, inner: IObjectStore, timeout: float = 10.0,
                 retry_backoff: float = 0.2, max_workers: int = 8):
        """
        Args:
            inner: Object store doing the actual I/O
            timeout: Seconds each call may take before StorageUnavailableError
            retry_backoff: Seconds to wait before the single retry
            max_workers: Size of the I/O thread pool
        """
        self.inner = inner
        self.timeout = timeout
        self.retry_backoff = retry_backoff
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="quickdrop-storage"
        )

    def _call(self, name: str, fn: Callable[[], T],
              on_abandon: Optional[Callable[[Future], None]] = None) -> T:
        future = self._executor.submit(fn)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            if on_abandon is not None:
                future.add_done_callback(on_abandon)
            raise StorageUnavailableError(
                f"Object store {name} timed out after {self.timeout}s", e
            ) from e

    def _with_retry(self, name: str, fn: Callable[[], T],
                    before_retry: Optional[Callable[[], None]] = None,
                    on_abandon: Optional[Callable[[Future], None]] = None) -> T:
        try:
            return self._call(name, fn, on_abandon)
        except StorageUnavailableError as e:
            if before_retry is None or isinstance(e.original_error, FutureTimeoutError):
                raise
            logger.warning(f"Object store {name} failed, retrying once: {e}")
            time.sleep(self.retry_backoff)
            before_retry()
            return self._call(name, fn, on_abandon)

    def put(self, token: str, content: BinaryIO, metadata: ObjectMetadata) -> StoredPayload:
        rewind = None
        if _seekable(content):
            start = content.tell()

            def rewind():
                content.seek(start)

        def _discard_late_write(future: Future) -> None:
            if future.exception() is None:
                logger.warning(f"Discarding payload {token[:8]} written after timeout")
                self.inner.delete(token)

        return self._with_retry(
            "put",
            lambda: self.inner.put(token, content, metadata),
            before_retry=rewind,
            on_abandon=_discard_late_write,
        )

    def get(self, token: str) -> Optional[BinaryIO]:
        def _close_late_handle(future: Future) -> None:
            if future.exception() is None and future.result() is not None:
                future.result().close()

        return self._with_retry(
            "get",
            lambda: self.inner.get(token),
            before_retry=lambda: None,
            on_abandon=_close_late_handle,
        )

    def delete(self, token: str) -> bool:
        return self._with_retry("delete", lambda: self.inner.delete(token), before_retry=lambda: None)

    def exists(self, token: str) -> bool:
        try:
            return self._call("exists", lambda: self.inner.exists(token))
        except StorageUnavailableError:
            return False

    def list_payloads(self) -> List[PayloadListing]:
        return self._with_retry("list", self.inner.list_payloads, before_retry=lambda: None)

    def health_check(self) -> bool:
        try:
            return self._call("health_check", self.inner.health_check)
        except StorageUnavailableError:
            return False

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.inner.close()


def _seekable(stream) -> bool:
    try:
        return bool(stream.seekable())
    except (AttributeError, ValueError):
        return False
