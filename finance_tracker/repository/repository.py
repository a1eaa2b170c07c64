"""
In-Memory Finance Repository

DESIGN DECISION: The repository is the single writer of the in-memory data
set. Every mutation validates first, then applies atomically under a lock,
so the next aggregation call always sees a consistent collection.

The repository knows nothing about users, networks or caches. The session
layer decides when to write through to the remote store and when to
replace the whole collection with a freshly loaded snapshot.
"""

import threading
from typing import Any, Iterable, Mapping, Optional, Union
from uuid import uuid4

from finance_tracker.errors import NotFoundError, ValidationError
from finance_tracker.models.finance import (
    AnnualGoals,
    FinanceSnapshot,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
    validate_draft,
    validate_goals,
    validate_transaction,
    validate_update,
)


DraftInput = Union[TransactionDraft, Mapping[str, Any]]
UpdateInput = Union[TransactionUpdate, Mapping[str, Any]]
GoalsInput = Union[AnnualGoals, Mapping[str, Any]]


class FinanceRepository:
    """
    Authoritative collection of transactions and annual goals.

    Transactions keep insertion order. Goals are keyed by year, so there is
    never more than one goal set per year.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        goals: Iterable[AnnualGoals] = (),
    ):
        self._lock = threading.RLock()
        self._transactions: dict[str, Transaction] = {}
        self._goals: dict[int, AnnualGoals] = {}
        self.replace_all(FinanceSnapshot(transactions=list(transactions), goals=list(goals)))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def transactions(self) -> list[Transaction]:
        with self._lock:
            return list(self._transactions.values())

    @property
    def goals(self) -> list[AnnualGoals]:
        """All goal sets, newest year first."""
        with self._lock:
            return sorted(self._goals.values(), key=lambda g: g.year, reverse=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    def has_transaction(self, transaction_id: str) -> bool:
        with self._lock:
            return transaction_id in self._transactions

    def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Raises:
            NotFoundError: if no transaction has this id
        """
        with self._lock:
            try:
                return self._transactions[transaction_id]
            except KeyError:
                raise NotFoundError("transaction", transaction_id)

    def goals_for_year(self, year: int) -> Optional[AnnualGoals]:
        with self._lock:
            return self._goals.get(year)

    def snapshot(self) -> FinanceSnapshot:
        with self._lock:
            return FinanceSnapshot(
                goals=self.goals,
                transactions=self.transactions,
            )

    # -------------------------------------------------------------------------
    # Transaction mutations
    # -------------------------------------------------------------------------

    def add_transaction(
        self,
        draft: DraftInput,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """
        Validate a draft, give it an id and append it.

        Args:
            draft: The transaction fields (no id)
            transaction_id: Id already assigned by the remote store.
                           A fresh uuid4 is used when omitted.

        Raises:
            ValidationError: if the draft is invalid or the id is taken
        """
        validated = validate_draft(draft)

        with self._lock:
            new_id = transaction_id or str(uuid4())
            if new_id in self._transactions:
                raise ValidationError("id", f"transaction id already exists: {new_id}")

            transaction = validate_transaction({**validated.model_dump(), "id": new_id})
            self._transactions[new_id] = transaction
            return transaction

    def preview_update(self, transaction_id: str, fields: UpdateInput) -> Transaction:
        """
        Merge fields into a transaction without storing the result.

        Raises:
            NotFoundError: if the id is absent
            ValidationError: if the fields or the merged record are invalid
        """
        update = validate_update(fields)

        with self._lock:
            current = self.get_transaction(transaction_id)
            merged = {**current.model_dump(), **update.changes()}
            return validate_transaction(merged)

    def update_transaction(self, transaction_id: str, fields: UpdateInput) -> Transaction:
        """
        Merge the supplied fields into an existing transaction.

        Fields left out of the update keep their current values. The merged
        record is re-validated before it replaces the stored one.

        Raises:
            NotFoundError: if the id is absent
            ValidationError: if the merge produces an invalid transaction
        """
        with self._lock:
            updated = self.preview_update(transaction_id, fields)
            self._transactions[transaction_id] = updated
            return updated

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Remove a transaction.

        Deleting an id that is not present is an error, not a no-op.

        Raises:
            NotFoundError: if the id is absent (the collection is untouched)
        """
        with self._lock:
            if transaction_id not in self._transactions:
                raise NotFoundError("transaction", transaction_id)
            del self._transactions[transaction_id]

    # -------------------------------------------------------------------------
    # Goal mutations
    # -------------------------------------------------------------------------

    def upsert_goals(self, goals: GoalsInput) -> AnnualGoals:
        """
        Store the goals for goals.year, replacing any previous set.

        Raises:
            ValidationError: if the goal set is invalid
        """
        validated = validate_goals(goals)
        with self._lock:
            self._goals[validated.year] = validated
            return validated

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    def replace_all(self, snapshot: FinanceSnapshot) -> None:
        """
        Swap in a whole new data set (last snapshot wins).

        Later goals for the same year replace earlier ones; a repeated
        transaction id is rejected.

        Raises:
            ValidationError: if the snapshot repeats a transaction id
        """
        transactions: dict[str, Transaction] = {}
        for transaction in snapshot.transactions:
            if transaction.id in transactions:
                raise ValidationError("id", f"duplicate transaction id in snapshot: {transaction.id}")
            transactions[transaction.id] = transaction

        goals = {g.year: g for g in snapshot.goals}

        with self._lock:
            self._transactions = transactions
            self._goals = goals

    def clear(self) -> None:
        with self._lock:
            self._transactions = {}
            self._goals = {}
