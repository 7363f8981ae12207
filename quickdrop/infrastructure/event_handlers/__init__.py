"""
Event Handlers

Subscribers that turn domain events into side effects.
"""

from .logging_handler import LoggingEventHandler

__all__ = ['LoggingEventHandler']
