"""
Tests for DependencyContainer.
"""

import pytest

from quickdrop.application.dependency_container import (
    DependencyContainer,
    DependencyNotFoundError,
)
from quickdrop.application.event_publisher import EventPublisher
from quickdrop.domain.events import ObjectExpiredEvent
from tests.fixtures.domain_fixtures import EPOCH


class Clock:
    pass


class TestDependencyContainer:
    def test_singleton_resolves_same_instance(self):
        container = DependencyContainer()
        clock = Clock()
        container.register_singleton(Clock, clock)

        assert container.resolve(Clock) is clock
        assert container.singleton_count == 1

    def test_unregistered(self):
        container = DependencyContainer()
        with pytest.raises(DependencyNotFoundError):
            container.resolve(Clock)
        assert container.resolve_optional(Clock) is None

    def test_override_takes_precedence(self):
        container = DependencyContainer()
        real, fake = Clock(), Clock()
        container.register_singleton(Clock, real)

        container.override(Clock, fake)
        assert container.resolve(Clock) is fake

        container.clear_overrides()
        assert container.resolve(Clock) is real

    def test_setup_event_handlers_logs_events(self, caplog):
        container = DependencyContainer()
        publisher = EventPublisher()
        container.setup_event_handlers(publisher)

        with caplog.at_level("INFO", logger="quickdrop"):
            publisher.publish(ObjectExpiredEvent("abcdefgh", EPOCH, detected_by="reaper"))

        assert "Object abcdefgh expired (detected by reaper)" in caplog.text
