"""
Object Lifecycle Domain

Issues capability tokens and governs each stored object from upload to
destruction.
"""

from .entities import ObjectMetadata, StoredObject
from .repositories import ObjectRecordRepository
from .services import ConsumeResult, Denied, LifecycleManager, PayloadStream
from .token_generator import TokenGenerator
from .value_objects import AccessToken, DenialReason, ObjectState, ObjectStatus

__all__ = [
    'AccessToken',
    'ConsumeResult',
    'Denied',
    'DenialReason',
    'LifecycleManager',
    'ObjectMetadata',
    'ObjectRecordRepository',
    'ObjectState',
    'ObjectStatus',
    'PayloadStream',
    'StoredObject',
    'TokenGenerator',
]
