"""
Abstract Remote Store Interface

DESIGN DECISION: We define an abstract interface for durable persistence.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the in-memory repository decoupled from any backend

The remote store is a durability and sync sink. The repository applies
mutations immediately; the session writes them here first and reconciles
by reloading the full snapshot when the store reports a change.

Every backend failure must surface as RemoteUnavailableError. Retry and
backoff, if any, happen inside the implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping, Optional

from finance_tracker.errors import (
    NotFoundError,
    RemoteUnavailableError,
    StorageError,
)
from finance_tracker.models.finance import (
    AnnualGoals,
    FinanceSnapshot,
    Transaction,
    TransactionDraft,
)


ChangeCallback = Callable[[], Awaitable[Any]]


class Subscription:
    """Handle returned by RemoteStore.subscribe."""

    def __init__(self, cancel: Optional[Callable[[], None]] = None):
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._cancel is not None:
            self._cancel()


class RemoteStore(ABC):
    """
    Abstract interface for per-user durable storage.

    Every method is scoped to one user; no implementation may return or
    modify another user's data.
    """

    @abstractmethod
    async def load_all(self, user_id: str) -> FinanceSnapshot:
        """
        Load everything stored for a user.

        Raises:
            RemoteUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def insert_transaction(
        self,
        user_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """
        Persist a new transaction.

        Returns:
            The stored record, with the id the store assigned

        Raises:
            RemoteUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        user_id: str,
        transaction_id: str,
        fields: Mapping[str, Any],
    ) -> Transaction:
        """
        Merge fields into a stored transaction.

        Returns:
            The stored record after the update

        Raises:
            NotFoundError: If the transaction doesn't exist for this user
            RemoteUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        """
        Delete a stored transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist for this user
            RemoteUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def upsert_goals(self, user_id: str, goals: AnnualGoals) -> AnnualGoals:
        """
        Insert or replace the goals for goals.year.

        Raises:
            RemoteUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def subscribe(self, user_id: str, on_change: ChangeCallback) -> Subscription:
        """
        Get notified when the user's data changes remotely.

        on_change carries no payload: the subscriber is expected to reload
        the full snapshot.
        """
        pass


__all__ = [
    "ChangeCallback",
    "NotFoundError",
    "RemoteStore",
    "RemoteUnavailableError",
    "StorageError",
    "Subscription",
]
