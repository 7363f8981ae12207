"""
Domain Events

Immutable records of significant state changes in the domain.
Events decouple side effects (logging, notifications) from core lifecycle logic.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Base class for all domain events.

    Attributes:
        aggregate_id: Truncated token of the object that generated the event
        occurred_at: Timestamp when the event occurred
    """
    aggregate_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event
        """
        return {
            "event_type": self.__class__.__name__,
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class ObjectRegisteredEvent(DomainEvent):
    """
    Event emitted when an upload has been stored and its token issued.

    Attributes:
        size_bytes: Stored payload size
        expires_at: When the object expires
        max_retrievals: Number of permitted downloads
    """
    size_bytes: int
    expires_at: datetime
    max_retrievals: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "size_bytes": self.size_bytes,
            "expires_at": self.expires_at.isoformat(),
            "max_retrievals": self.max_retrievals,
        })
        return base_dict


@dataclass(frozen=True)
class ObjectConsumedEvent(DomainEvent):
    """
    Event emitted for every successful, counted retrieval.

    Attributes:
        retrieval_count: Count after this retrieval
        max_retrievals: Retrieval limit
    """
    retrieval_count: int
    max_retrievals: int

    @property
    def exhausted(self) -> bool:
        return self.retrieval_count >= self.max_retrievals

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "retrieval_count": self.retrieval_count,
            "max_retrievals": self.max_retrievals,
        })
        return base_dict


@dataclass(frozen=True)
class ConsumptionDeniedEvent(DomainEvent):
    """
    Event emitted when a retrieval is refused.

    Internal diagnostics only; the reason is never sent to clients.
    """
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict["reason"] = self.reason
        return base_dict


@dataclass(frozen=True)
class ObjectExpiredEvent(DomainEvent):
    """
    Event emitted when an Active object passes its time to live.

    Attributes:
        detected_by: "access" or "reaper"
    """
    detected_by: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict["detected_by"] = self.detected_by
        return base_dict


@dataclass(frozen=True)
class ObjectPurgedEvent(DomainEvent):
    """
    Event emitted once an object's bytes and record are destroyed.

    Attributes:
        previous_state: State the record was in before the purge
    """
    previous_state: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict["previous_state"] = self.previous_state
        return base_dict
