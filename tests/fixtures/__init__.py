"""
Test fixtures: entity factories, fake clock and test doubles.
"""

from .assertion_helpers import assert_gone, events_of_type
from .domain_fixtures import FakeClock, create_stored_object, make_token
from .mock_repositories import FailingObjectStore, RecordingEventPublisher, SlowObjectStore

__all__ = [
    'FailingObjectStore',
    'FakeClock',
    'RecordingEventPublisher',
    'SlowObjectStore',
    'assert_gone',
    'create_stored_object',
    'events_of_type',
    'make_token',
]
