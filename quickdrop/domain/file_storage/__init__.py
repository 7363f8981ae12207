"""
File Storage Domain

Contract for the payload byte store.
"""

from .object_store import IObjectStore, PayloadListing, StoredPayload

__all__ = [
    'IObjectStore',
    'PayloadListing',
    'StoredPayload',
]
