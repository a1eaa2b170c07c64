"""Services package: external collaborators behind interfaces."""

from finance_tracker.services.auth import (
    AuthProvider,
    InMemoryAuthProvider,
)
from finance_tracker.services.storage import (
    InMemoryRemoteStore,
    JsonSnapshotCache,
    RemoteStore,
    Subscription,
)

__all__ = [
    # Auth
    "AuthProvider",
    "InMemoryAuthProvider",
    # Storage
    "InMemoryRemoteStore",
    "JsonSnapshotCache",
    "RemoteStore",
    "Subscription",
]
