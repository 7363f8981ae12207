"""
Object Lifecycle Entities

Domain entities for ephemeral stored objects.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from .value_objects import ObjectState


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ObjectMetadata:
    """Client-supplied description of an uploaded file."""
    original_name: str
    content_type: str = "application/octet-stream"

    def to_dict(self) -> dict:
        return {
            "original_name": self.original_name,
            "content_type": self.content_type,
        }


@dataclass(frozen=True)
class StoredObject:
    """
    Snapshot of one uploaded file's record.

    Snapshots are immutable; the lifecycle manager produces a new snapshot for
    every transition and hands it to the record repository, which swaps it in
    atomically. Only state and retrieval_count ever differ between snapshots of
    the same token.
    """
    token: str
    payload_ref: str
    size_bytes: int
    content_type: str
    original_name: str
    created_at: datetime
    expires_at: datetime
    max_retrievals: int = 1
    retrieval_count: int = 0
    state: ObjectState = ObjectState.ACTIVE

    def __post_init__(self):
        if self.max_retrievals < 1:
            raise ValueError(f"max_retrievals must be >= 1, got {self.max_retrievals}")
        if not 0 <= self.retrieval_count <= self.max_retrievals:
            raise ValueError(
                f"retrieval_count {self.retrieval_count} outside 0..{self.max_retrievals}"
            )
        if self.expires_at < self.created_at:
            raise ValueError("expires_at precedes created_at")

    @classmethod
    def create(cls, token: str, payload_ref: str, size_bytes: int,
               metadata: ObjectMetadata, ttl: timedelta,
               max_retrievals: int = 1,
               now: Optional[datetime] = None) -> 'StoredObject':
        """
        Factory method for a freshly registered, Active object.

        Args:
            token: Access token issued for the object
            payload_ref: Object store handle for the bytes
            size_bytes: Number of bytes stored
            metadata: Original filename and content type
            ttl: Time to live
            max_retrievals: Number of permitted downloads
            now: Creation time (defaults to current UTC time)

        Returns:
            New StoredObject in ACTIVE state
        """
        created_at = now or utcnow()
        return cls(
            token=token,
            payload_ref=payload_ref,
            size_bytes=size_bytes,
            content_type=metadata.content_type,
            original_name=metadata.original_name,
            created_at=created_at,
            expires_at=created_at + ttl,
            max_retrievals=max_retrievals,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the time to live has elapsed."""
        return (now or utcnow()) >= self.expires_at

    def is_retrievable(self, now: Optional[datetime] = None) -> bool:
        """Active and inside its time to live."""
        return self.state is ObjectState.ACTIVE and not self.is_expired(now)

    def get_remaining_seconds(self, now: Optional[datetime] = None) -> int:
        """Seconds until expiration (0 if expired)."""
        remaining = self.expires_at - (now or utcnow())
        return max(0, int(remaining.total_seconds()))

    @property
    def remaining_retrievals(self) -> int:
        return self.max_retrievals - self.retrieval_count

    def transition_to(self, target: ObjectState) -> 'StoredObject':
        """
        Return a copy in the target state.

        Raises:
            ValueError: If the state machine does not allow the move
        """
        if not self.state.can_transition_to(target):
            raise ValueError(
                f"Illegal transition {self.state.value} -> {target.value}"
            )
        return replace(self, state=target)

    def record_retrieval(self) -> 'StoredObject':
        """
        Return a copy with one more counted retrieval.

        The copy is CONSUMED when the count reaches max_retrievals.
        """
        if self.state is not ObjectState.ACTIVE:
            raise ValueError(f"Cannot retrieve object in state {self.state.value}")
        count = self.retrieval_count + 1
        state = ObjectState.CONSUMED if count >= self.max_retrievals else ObjectState.ACTIVE
        return replace(self, retrieval_count=count, state=state)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "token": self.token,
            "payload_ref": self.payload_ref,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
            "original_name": self.original_name,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "max_retrievals": self.max_retrievals,
            "retrieval_count": self.retrieval_count,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StoredObject':
        """Create StoredObject from dictionary."""
        return cls(
            token=data["token"],
            payload_ref=data["payload_ref"],
            size_bytes=data["size_bytes"],
            content_type=data["content_type"],
            original_name=data["original_name"],
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            max_retrievals=data.get("max_retrievals", 1),
            retrieval_count=data.get("retrieval_count", 0),
            state=ObjectState(data.get("state", ObjectState.ACTIVE.value)),
        )
