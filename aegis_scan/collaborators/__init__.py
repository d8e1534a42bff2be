"""Collaborator interfaces for record persistence and identity."""

from .base import ScanRecord, ScanRecordStore, IdentityProvider, UserIdentity
from .memory import InMemoryScanRecordStore, StaticIdentityProvider

__all__ = [
    'ScanRecord', 'ScanRecordStore', 'IdentityProvider', 'UserIdentity',
    'InMemoryScanRecordStore', 'StaticIdentityProvider'
]
