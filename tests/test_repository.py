"""
Tests for the in-memory finance repository.
"""

import pytest
from decimal import Decimal

from finance_tracker.errors import NotFoundError, ValidationError
from finance_tracker.models.finance import (
    AnnualGoals,
    FinanceSnapshot,
    Transaction,
    TransactionUpdate,
)
from finance_tracker.repository import FinanceRepository


def draft(**overrides):
    data = {
        "date": "2024-03-01",
        "type": "expense",
        "amount": "42.50",
        "description": "Groceries",
        "category": "food",
    }
    data.update(overrides)
    return data


def goals(year=2024, **overrides):
    data = {
        "year": year,
        "expected_profit": "12000",
        "monthly_budget": "1000",
        "emergency_reserve": "2400",
        "planned_investments": "1200",
    }
    data.update(overrides)
    return data


@pytest.fixture
def repository():
    return FinanceRepository()


class TestAddTransaction:
    """Tests for adding transactions."""

    def test_assigns_id(self, repository):
        """Test that a fresh id is assigned when none is given."""
        transaction = repository.add_transaction(draft())
        assert transaction.id
        assert repository.get_transaction(transaction.id) == transaction
        assert len(repository) == 1

    def test_uses_given_id(self, repository):
        """Test that an id assigned by the remote store is kept."""
        transaction = repository.add_transaction(draft(), transaction_id="remote-1")
        assert transaction.id == "remote-1"

    def test_duplicate_id_rejected(self, repository):
        """Test that ids are unique."""
        repository.add_transaction(draft(), transaction_id="x")
        with pytest.raises(ValidationError) as exc_info:
            repository.add_transaction(draft(), transaction_id="x")
        assert exc_info.value.field == "id"
        assert len(repository) == 1

    @pytest.mark.parametrize("amount", ["-5", "0"])
    def test_invalid_amount_rejected(self, repository, amount):
        """Test that nothing is stored for an invalid draft."""
        with pytest.raises(ValidationError):
            repository.add_transaction(draft(amount=amount))
        assert len(repository) == 0

    def test_keeps_insertion_order(self, repository):
        first = repository.add_transaction(draft(date="2024-05-01"))
        second = repository.add_transaction(draft(date="2024-01-01"))
        assert [t.id for t in repository.transactions] == [first.id, second.id]


class TestUpdateTransaction:
    """Tests for merging updates."""

    def test_merges_only_supplied_fields(self, repository):
        """Test that omitted fields keep their values."""
        original = repository.add_transaction(draft())
        updated = repository.update_transaction(original.id, {"amount": "99.99"})

        assert updated.amount == Decimal("99.99")
        assert updated.description == original.description
        assert updated.date == original.date
        assert updated.category == original.category
        assert updated.id == original.id

    def test_accepts_update_model(self, repository):
        original = repository.add_transaction(draft())
        updated = repository.update_transaction(
            original.id, TransactionUpdate(description="Market"),
        )
        assert updated.description == "Market"

    def test_clearing_category(self, repository):
        original = repository.add_transaction(draft())
        updated = repository.update_transaction(original.id, {"category": ""})
        assert updated.category is None

    def test_keeps_position(self, repository):
        first = repository.add_transaction(draft())
        second = repository.add_transaction(draft())
        repository.update_transaction(first.id, {"amount": "1"})
        assert [t.id for t in repository.transactions] == [first.id, second.id]

    def test_unknown_id(self, repository):
        with pytest.raises(NotFoundError):
            repository.update_transaction("missing", {"amount": "1"})

    def test_invalid_merge_leaves_record(self, repository):
        """Test that a rejected update changes nothing."""
        original = repository.add_transaction(draft())
        with pytest.raises(ValidationError):
            repository.update_transaction(original.id, {"amount": "-1"})
        assert repository.get_transaction(original.id) == original

    def test_id_change_rejected(self, repository):
        original = repository.add_transaction(draft())
        with pytest.raises(ValidationError):
            repository.update_transaction(original.id, {"id": "other"})

    def test_preview_does_not_store(self, repository):
        original = repository.add_transaction(draft())
        preview = repository.preview_update(original.id, {"amount": "7"})
        assert preview.amount == Decimal("7")
        assert repository.get_transaction(original.id).amount == Decimal("42.50")


class TestDeleteTransaction:
    """Tests for deleting transactions."""

    def test_delete(self, repository):
        transaction = repository.add_transaction(draft())
        repository.delete_transaction(transaction.id)
        assert len(repository) == 0
        assert not repository.has_transaction(transaction.id)

    def test_delete_missing_is_an_error(self, repository):
        """Test that deleting an unknown id fails and changes nothing."""
        kept = repository.add_transaction(draft())
        with pytest.raises(NotFoundError) as exc_info:
            repository.delete_transaction("missing")
        assert exc_info.value.entity_id == "missing"
        assert repository.transactions == [kept]

    def test_delete_twice(self, repository):
        transaction = repository.add_transaction(draft())
        repository.delete_transaction(transaction.id)
        with pytest.raises(NotFoundError):
            repository.delete_transaction(transaction.id)


class TestGoals:
    """Tests for annual goals."""

    def test_upsert_inserts(self, repository):
        stored = repository.upsert_goals(goals())
        assert repository.goals_for_year(2024) == stored
        assert repository.goals_for_year(2023) is None

    def test_upsert_replaces_same_year(self, repository):
        """Test that there is one goal set per year and the last one wins."""
        repository.upsert_goals(goals(monthly_budget="1000"))
        repository.upsert_goals(goals(monthly_budget="1500"))
        assert len(repository.goals) == 1
        assert repository.goals_for_year(2024).monthly_budget == Decimal("1500")

    def test_goals_newest_first(self, repository):
        repository.upsert_goals(goals(2022))
        repository.upsert_goals(goals(2024))
        repository.upsert_goals(goals(2023))
        assert [g.year for g in repository.goals] == [2024, 2023, 2022]

    def test_invalid_goals_rejected(self, repository):
        with pytest.raises(ValidationError):
            repository.upsert_goals(goals(monthly_budget="-1"))
        assert repository.goals == []


class TestBulkOperations:
    """Tests for snapshot replacement."""

    def test_replace_all(self, repository):
        repository.add_transaction(draft())
        snapshot = FinanceSnapshot(
            transactions=[Transaction(id="t1", **draft(amount="5"))],
            goals=[AnnualGoals(**goals())],
        )
        repository.replace_all(snapshot)

        assert [t.id for t in repository.transactions] == ["t1"]
        assert repository.goals_for_year(2024) is not None

    def test_replace_all_rejects_duplicate_ids(self, repository):
        """Test that a bad snapshot leaves the current data in place."""
        kept = repository.add_transaction(draft())
        snapshot = FinanceSnapshot(transactions=[
            Transaction(id="dup", **draft()),
            Transaction(id="dup", **draft()),
        ])
        with pytest.raises(ValidationError):
            repository.replace_all(snapshot)
        assert repository.transactions == [kept]

    def test_snapshot_and_clear(self, repository):
        repository.add_transaction(draft())
        repository.upsert_goals(goals())

        snapshot = repository.snapshot()
        assert len(snapshot.transactions) == 1
        assert len(snapshot.goals) == 1

        repository.clear()
        assert len(repository) == 0
        assert repository.goals == []

        restored = FinanceRepository(snapshot.transactions, snapshot.goals)
        assert restored.snapshot() == snapshot


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
