"""
Dependency Injection Container

Manages service lifecycles and dependency resolution.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class DependencyNotFoundError(Exception):
    """Raised when attempting to resolve an unregistered dependency."""
    pass


class DependencyContainer:
    """
    Dependency injection container for managing service lifecycles.

    Holds the singletons built at application start plus test overrides.
    Thread-safe for concurrent access.
    """

    def __init__(self):
        """Initialize the dependency container."""
        self._singletons: Dict[Type, Any] = {}
        self._overrides: Dict[Type, Any] = {}
        self._lock = threading.Lock()

        logger.debug("DependencyContainer initialized")

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """
        Register a singleton service (single instance shared across all resolutions).

        Args:
            interface: The interface or class type to register
            implementation: The concrete instance to use

        Example:
            container.register_singleton(LifecycleManager, manager)
        """
        with self._lock:
            self._singletons[interface] = implementation
            logger.debug(f"Registered singleton: {interface.__name__}")

    def resolve(self, interface: Type[T]) -> T:
        """
        Resolve a registered service.

        Args:
            interface: The interface or class type to resolve

        Returns:
            The resolved service instance

        Raises:
            DependencyNotFoundError: If the interface is not registered
        """
        with self._lock:
            if interface in self._overrides:
                return self._overrides[interface]
            if interface in self._singletons:
                return self._singletons[interface]
        raise DependencyNotFoundError(
            f"No registration found for type: {interface.__name__}"
        )

    def resolve_optional(self, interface: Type[T]) -> Optional[T]:
        """Resolve a service, returning None when it is not registered."""
        try:
            return self.resolve(interface)
        except DependencyNotFoundError:
            return None

    def override(self, interface: Type[T], implementation: T) -> None:
        """
        Override a registered service (primarily for testing).

        Overrides take precedence over singleton registrations.
        """
        with self._lock:
            self._overrides[interface] = implementation
            logger.debug(f"Overridden: {interface.__name__}")

    def clear_overrides(self) -> None:
        """Clear all overrides."""
        with self._lock:
            self._overrides.clear()
            logger.debug("Cleared all overrides")

    @property
    def singleton_count(self) -> int:
        with self._lock:
            return len(self._singletons)

    def setup_event_handlers(self, event_publisher, event_handler_classes: List[Type] = None) -> None:
        """
        Instantiate infrastructure event handlers and subscribe them to DomainEvent.

        Args:
            event_publisher: EventPublisher instance to subscribe handlers to
            event_handler_classes: Handler classes to register.
                                   Defaults to [LoggingEventHandler].
        """
        from quickdrop.domain.events import DomainEvent
        from quickdrop.infrastructure.event_handlers.logging_handler import LoggingEventHandler

        if event_handler_classes is None:
            event_handler_classes = [LoggingEventHandler]

        for handler_class in event_handler_classes:
            if handler_class is LoggingEventHandler:
                handler = handler_class(logging.getLogger("quickdrop"))
            else:
                handler = handler_class()
            event_publisher.subscribe(DomainEvent, handler.handle)
            logger.debug(f"Registered event handler: {handler_class.__name__}")
