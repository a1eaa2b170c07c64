"""
Storage Services Package

Provides the remote store interface and its implementations, plus the local
JSON snapshot cache. Google Sheets is the durable backend; the in-memory
store serves local runs and tests.
"""

from finance_tracker.services.storage.interface import (
    ChangeCallback,
    NotFoundError,
    RemoteStore,
    RemoteUnavailableError,
    StorageError,
    Subscription,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)
from finance_tracker.services.storage.local_cache import JsonSnapshotCache
from finance_tracker.services.storage.memory import InMemoryRemoteStore

__all__ = [
    # Interfaces
    "ChangeCallback",
    "RemoteStore",
    "Subscription",
    # Exceptions
    "NotFoundError",
    "RemoteUnavailableError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryRemoteStore",
    "JsonSnapshotCache",
]
