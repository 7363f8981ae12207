"""
Shared pytest fixtures and configuration for the QuickDrop test suite.

This module provides:
- Hypothesis configuration for property-based testing
- Lifecycle manager fixtures wired to in-memory storage and a fake clock
- Flask application and test client fixtures
"""

from datetime import timedelta

import pytest
from hypothesis import HealthCheck, Phase, settings

from quickdrop.domain.object_lifecycle.services import LifecycleManager
from quickdrop.infrastructure.in_memory_record_repository import InMemoryRecordRepository
from quickdrop.infrastructure.memory_object_store import MemoryObjectStore
from tests.fixtures.domain_fixtures import FakeClock
from tests.fixtures.mock_repositories import RecordingEventPublisher

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile("default")


# =============================================================================
# Lifecycle Fixtures
# =============================================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    """Controllable UTC clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def object_store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def record_repository() -> InMemoryRecordRepository:
    return InMemoryRecordRepository()


@pytest.fixture
def event_publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def manager(record_repository, object_store, event_publisher, fake_clock) -> LifecycleManager:
    """LifecycleManager over in-memory storage with a fake clock."""
    return LifecycleManager(
        record_repository,
        object_store,
        event_publisher=event_publisher,
        clock=fake_clock,
    )


@pytest.fixture
def one_minute() -> timedelta:
    return timedelta(seconds=60)


# =============================================================================
# Flask Fixtures
# =============================================================================

@pytest.fixture
def transfer_config(tmp_path):
    """TransferConfig for tests: memory backends, no background reaper."""
    # Own MonkeyPatch so a test's `monkeypatch` is undone before app teardown.
    with pytest.MonkeyPatch.context() as mp:
        mp.setenv("STORAGE_BACKEND", "memory")
        mp.setenv("RECORD_BACKEND", "memory")
        mp.setenv("REAPER_MODE", "off")
        mp.setenv("PUBLIC_BASE_URL", "http://quickdrop.test")
        mp.setenv("STORAGE_DIR", str(tmp_path / "uploads"))

        from quickdrop.config.transfer_config import TransferConfig

        yield TransferConfig()


@pytest.fixture
def app(transfer_config):
    from quickdrop.app_factory import create_app, shutdown_app

    flask_app = create_app(transfer_config)
    flask_app.config["TESTING"] = True
    yield flask_app
    shutdown_app(flask_app, timeout=5)


@pytest.fixture
def client(app):
    return app.test_client()


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (real filesystem or Redis)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        path = str(item.fspath)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)
        elif "/property/" in path:
            item.add_marker(pytest.mark.property)
