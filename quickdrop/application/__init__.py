"""
Application Layer

Services that orchestrate the domain for the API and background tasks.
"""

from .dependency_container import DependencyContainer, DependencyNotFoundError
from .event_publisher import EventPublisher
from .reaper import Reaper
from .transfer_service import TransferService
from .upload_result import UploadResult

__all__ = [
    'DependencyContainer',
    'DependencyNotFoundError',
    'EventPublisher',
    'Reaper',
    'TransferService',
    'UploadResult',
]
