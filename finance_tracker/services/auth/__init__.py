"""Authentication provider package."""

from finance_tracker.services.auth.interface import (
    AuthCallback,
    AuthProvider,
    InMemoryAuthProvider,
)

__all__ = ["AuthCallback", "AuthProvider", "InMemoryAuthProvider"]
