"""
Logging Event Handler

Infrastructure event handler for logging domain events.
Domain layer remains unaware of logging infrastructure.
"""

import logging

from quickdrop.domain.events import (
    ConsumptionDeniedEvent,
    DomainEvent,
    ObjectConsumedEvent,
    ObjectExpiredEvent,
    ObjectPurgedEvent,
    ObjectRegisteredEvent,
)


class LoggingEventHandler:
    """
    Infrastructure event handler for logging domain events.

    Subscribes to DomainEvent and logs each lifecycle transition.
    """

    def __init__(self, logger: logging.Logger):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance
        """
        self.logger = logger

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event by logging it.

        Args:
            event: Domain event to log
        """
        if isinstance(event, ObjectRegisteredEvent):
            self._handle_registered(event)
        elif isinstance(event, ObjectConsumedEvent):
            self._handle_consumed(event)
        elif isinstance(event, ConsumptionDeniedEvent):
            self._handle_denied(event)
        elif isinstance(event, ObjectExpiredEvent):
            self._handle_expired(event)
        elif isinstance(event, ObjectPurgedEvent):
            self._handle_purged(event)
        else:
            self.logger.debug(
                f"Unhandled event: {event.__class__.__name__} "
                f"(aggregate_id={event.aggregate_id})"
            )

    def _handle_registered(self, event: ObjectRegisteredEvent) -> None:
        self.logger.info(
            f"Registered object {event.aggregate_id}: {event.size_bytes} bytes, "
            f"expires {event.expires_at.isoformat()}, "
            f"max_retrievals={event.max_retrievals}"
        )

    def _handle_consumed(self, event: ObjectConsumedEvent) -> None:
        self.logger.info(
            f"Object {event.aggregate_id} retrieved "
            f"({event.retrieval_count}/{event.max_retrievals})"
        )

    def _handle_denied(self, event: ConsumptionDeniedEvent) -> None:
        self.logger.debug(f"Retrieval of {event.aggregate_id} denied: {event.reason}")

    def _handle_expired(self, event: ObjectExpiredEvent) -> None:
        self.logger.info(f"Object {event.aggregate_id} expired (detected by {event.detected_by})")

    def _handle_purged(self, event: ObjectPurgedEvent) -> None:
        self.logger.info(
            f"Destroyed object {event.aggregate_id} (was {event.previous_state})"
        )
