"""
Reaper

Periodic sweep that expires overdue objects and purges terminal ones,
using only the lifecycle manager's public operations. Consumed records are
kept until their deadline.
"""

import logging
import threading
from datetime import timedelta
from typing import Any, Dict, Optional

from quickdrop.domain.errors import DomainError
from quickdrop.domain.object_lifecycle.services import LifecycleManager
from quickdrop.domain.object_lifecycle.value_objects import ObjectState

logger = logging.getLogger(__name__)


class Reaper:
    """
    Fixed-interval garbage collector for stored objects.

    A sweep can run on the in-process background thread (start/stop) or be
    triggered externally, e.g. by the Celery beat task. Races with concurrent
    downloads are settled by the lifecycle manager's per-token critical
    section, so a sweep never needs locks of its own.
    """

    def __init__(self, lifecycle_manager: LifecycleManager, interval_seconds: float = 60.0,
                 orphan_grace: Optional[timedelta] = timedelta(hours=1)):
        """
        Initialize Reaper.

        Args:
            lifecycle_manager: Lifecycle manager to sweep through
            interval_seconds: Seconds between background sweeps
            orphan_grace: Minimum age of a record-less payload before it is
                deleted, None to skip the orphan pass
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.lifecycle_manager = lifecycle_manager
        self.interval_seconds = interval_seconds
        self.orphan_grace = orphan_grace

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sweep(self) -> Dict[str, Any]:
        """
        Run one pass over every record.

        Returns:
            dict: Sweep statistics with counts and errors
        """
        stats: Dict[str, Any] = {
            "expired": 0,
            "purged": 0,
            "orphans_removed": 0,
            "errors": [],
        }

        try:
            records = self.lifecycle_manager.snapshot()
        except DomainError as e:
            error_msg = f"Could not list records: {e}"
            stats["errors"].append(error_msg)
            logger.error(error_msg)
            return stats

        now = self.lifecycle_manager.now()
        for record in records:
            token = record.token
            try:
                if not record.state.is_terminal():
                    if not record.is_expired(now):
                        continue
                    if self.lifecycle_manager.expire_if_due(token):
                        stats["expired"] += 1
                elif record.state is ObjectState.CONSUMED and not record.is_expired(now):
                    # Kept so late callers are told it was already consumed
                    continue
                if self.lifecycle_manager.purge(token):
                    stats["purged"] += 1
            except DomainError as e:
                error_msg = f"Error reaping {token[:8]}: {e}"
                stats["errors"].append(error_msg)
                logger.warning(error_msg)

        if self.orphan_grace is not None:
            try:
                stats["orphans_removed"] = self.lifecycle_manager.purge_orphans(self.orphan_grace)
            except DomainError as e:
                error_msg = f"Error removing orphaned payloads: {e}"
                stats["errors"].append(error_msg)
                logger.warning(error_msg)

        if stats["expired"] or stats["purged"] or stats["orphans_removed"] or stats["errors"]:
            logger.info(
                f"Reaper sweep - Expired: {stats['expired']}, "
                f"Purged: {stats['purged']}, "
                f"Orphans: {stats['orphans_removed']}, "
                f"Errors: {len(stats['errors'])}"
            )
        return stats

    def start(self) -> None:
        """Start the background sweep thread. No-op if already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="quickdrop-reaper", daemon=True)
        self._thread.start()
        logger.info(f"Reaper started with {self.interval_seconds}s interval")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the background thread to stop and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Reaper stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Reaper sweep failed: {e}", exc_info=True)
