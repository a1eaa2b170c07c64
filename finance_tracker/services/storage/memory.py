"""
In-Memory Remote Store

A RemoteStore that keeps per-user data in process memory. It is used for
local runs without a backend and as the remote side in tests.

Change notifications are delivered asynchronously (as scheduled tasks), the
way a real push channel would deliver them, so a subscriber reacting to a
change never runs inside the write that caused it.
"""

import asyncio
from typing import Any, Mapping
from uuid import uuid4

from finance_tracker.errors import NotFoundError, RemoteUnavailableError
from finance_tracker.models.finance import (
    AnnualGoals,
    FinanceSnapshot,
    Transaction,
    TransactionDraft,
    validate_draft,
    validate_goals,
    validate_transaction,
    validate_update,
)
from finance_tracker.services.storage.interface import (
    ChangeCallback,
    RemoteStore,
    Subscription,
)


class _UserData:
    def __init__(self) -> None:
        self.transactions: dict[str, Transaction] = {}
        self.goals: dict[int, AnnualGoals] = {}


class InMemoryRemoteStore(RemoteStore):
    """
    Process-local RemoteStore.

    set_available(False) makes every call fail with RemoteUnavailableError,
    which is how tests simulate an outage.
    """

    def __init__(self) -> None:
        self._users: dict[str, _UserData] = {}
        self._subscribers: dict[str, list[ChangeCallback]] = {}
        self._pending: set[asyncio.Task] = set()
        self._available = True

    def set_available(self, available: bool) -> None:
        self._available = available

    def _check_available(self, operation: str) -> None:
        if not self._available:
            raise RemoteUnavailableError(f"in-memory store offline during {operation}")

    def _user(self, user_id: str) -> _UserData:
        return self._users.setdefault(user_id, _UserData())

    async def load_all(self, user_id: str) -> FinanceSnapshot:
        self._check_available("load_all")
        data = self._user(user_id)
        return FinanceSnapshot(
            transactions=list(data.transactions.values()),
            goals=sorted(data.goals.values(), key=lambda g: g.year, reverse=True),
        )

    async def insert_transaction(
        self,
        user_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        self._check_available("insert_transaction")
        validated = validate_draft(draft)
        transaction = validate_transaction({**validated.model_dump(), "id": str(uuid4())})
        self._user(user_id).transactions[transaction.id] = transaction
        self._notify(user_id)
        return transaction

    async def update_transaction(
        self,
        user_id: str,
        transaction_id: str,
        fields: Mapping[str, Any],
    ) -> Transaction:
        self._check_available("update_transaction")
        data = self._user(user_id)
        current = data.transactions.get(transaction_id)
        if current is None:
            raise NotFoundError("transaction", transaction_id)

        changes = validate_update(fields).changes()
        updated = validate_transaction({**current.model_dump(), **changes})
        data.transactions[transaction_id] = updated
        self._notify(user_id)
        return updated

    async def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        self._check_available("delete_transaction")
        data = self._user(user_id)
        if transaction_id not in data.transactions:
            raise NotFoundError("transaction", transaction_id)
        del data.transactions[transaction_id]
        self._notify(user_id)

    async def upsert_goals(self, user_id: str, goals: AnnualGoals) -> AnnualGoals:
        self._check_available("upsert_goals")
        validated = validate_goals(goals)
        self._user(user_id).goals[validated.year] = validated
        self._notify(user_id)
        return validated

    async def subscribe(self, user_id: str, on_change: ChangeCallback) -> Subscription:
        callbacks = self._subscribers.setdefault(user_id, [])
        callbacks.append(on_change)

        def cancel() -> None:
            if on_change in callbacks:
                callbacks.remove(on_change)

        return Subscription(cancel)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, []))

    def _notify(self, user_id: str) -> None:
        callbacks = list(self._subscribers.get(user_id, []))
        if not callbacks:
            return

        loop = asyncio.get_running_loop()
        for callback in callbacks:
            task = loop.create_task(callback())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every scheduled change notification has been delivered."""
        while self._pending:
            await asyncio.wait(set(self._pending))
