"""
Object Lifecycle Value Objects

Immutable value objects for object state, externally visible status,
denial reasons and validated access tokens.
"""

from dataclasses import dataclass
from enum import Enum
import re

from ..errors import InvalidTokenError


class ObjectState(Enum):
    """Internal lifecycle state of a stored object."""
    ACTIVE = "active"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    PURGED = "purged"

    def is_terminal(self) -> bool:
        """Check if the payload is no longer retrievable in this state."""
        return self is not ObjectState.ACTIVE

    def can_transition_to(self, target: 'ObjectState') -> bool:
        """Check whether the state machine allows moving to target."""
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    ObjectState.ACTIVE: frozenset({ObjectState.CONSUMED, ObjectState.EXPIRED}),
    ObjectState.CONSUMED: frozenset({ObjectState.PURGED}),
    ObjectState.EXPIRED: frozenset({ObjectState.PURGED}),
    ObjectState.PURGED: frozenset(),
}


class ObjectStatus(Enum):
    """
    Externally visible status.

    Every terminal substate (and unknown tokens) collapse into GONE so that
    clients cannot tell a consumed object from an expired or never-issued one.
    """
    ACTIVE = "active"
    GONE = "gone"


class DenialReason(Enum):
    """Why a consumption attempt was refused."""
    NOT_FOUND = "not_found"
    ALREADY_CONSUMED = "already_consumed"
    EXPIRED = "expired"


_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]{32,128}")


@dataclass(frozen=True)
class AccessToken:
    """
    Value object representing a validated access token.

    Tokens must be 32-128 URL-safe characters. Validation happens before a
    token is used as a storage key, so malformed input never reaches the
    filesystem or Redis.
    """
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not _TOKEN_PATTERN.fullmatch(self.value):
            raise InvalidTokenError("Malformed access token")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Return True if value would pass validation."""
        return isinstance(value, str) and bool(_TOKEN_PATTERN.fullmatch(value))

    def __str__(self) -> str:
        return self.value
