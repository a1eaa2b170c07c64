"""
Tests for Finance Tracker models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory collaborators)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.errors import ValidationError
from finance_tracker.models.finance import (
    UNCATEGORIZED,
    AnnualData,
    AnnualGoals,
    FinanceSnapshot,
    GoalProgress,
    MonthlyData,
    Transaction,
    TransactionDraft,
    TransactionType,
    validate_draft,
    validate_goals,
    validate_update,
)


def make_draft(**overrides):
    data = {
        "date": "2024-03-15",
        "type": "income",
        "amount": "1000.00",
        "description": "Salary",
        "category": "work",
    }
    data.update(overrides)
    return data


class TestTransactionModels:
    """Tests for transaction Pydantic models."""

    def test_draft_creation(self):
        """Test TransactionDraft creation from a plain mapping."""
        draft = validate_draft(make_draft())
        assert draft.date == date(2024, 3, 15)
        assert draft.type == TransactionType.INCOME
        assert draft.amount == Decimal("1000.00")
        assert draft.category == "work"

    def test_draft_strips_whitespace(self):
        """Test that whitespace is stripped from the description."""
        draft = validate_draft(make_draft(description="  Salary  "))
        assert draft.description == "Salary"

    def test_blank_category_becomes_none(self):
        """Test that a blank category is stored as None and grouped as uncategorized."""
        draft = validate_draft(make_draft(category="   "))
        assert draft.category is None
        assert draft.category_label == UNCATEGORIZED

    def test_month_key_and_year(self):
        """Test that the month key is the literal calendar month."""
        draft = validate_draft(make_draft(date="2024-01-31"))
        assert draft.month_key == "2024-01"
        assert draft.year == 2024

    @pytest.mark.parametrize("amount", ["-5", "0", "0.00"])
    def test_non_positive_amount_rejected(self, amount):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validate_draft(make_draft(amount=amount))
        assert exc_info.value.field == "amount"

    def test_amount_with_three_decimals_rejected(self):
        """Test that amounts carry at most two decimal places."""
        with pytest.raises(ValidationError, match="amount"):
            validate_draft(make_draft(amount="10.005"))

    def test_non_finite_amount_rejected(self):
        """Test that NaN and infinity are not money."""
        with pytest.raises(ValidationError):
            validate_draft(make_draft(amount="NaN"))

    @pytest.mark.parametrize("value", ["2024/03/15", "15-03-2024", "2024-3-5", "2024-02-30"])
    def test_malformed_date_rejected(self, value):
        """Test that only real YYYY-MM-DD dates are accepted."""
        with pytest.raises(ValidationError) as exc_info:
            validate_draft(make_draft(date=value))
        assert exc_info.value.field == "date"

    def test_datetime_rejected(self):
        """Test that a date with a time of day is rejected."""
        with pytest.raises(ValidationError, match="date"):
            validate_draft(make_draft(date=datetime(2024, 3, 15, 23, 30)))

    def test_empty_description_rejected(self):
        """Test that the description is required."""
        with pytest.raises(ValidationError) as exc_info:
            validate_draft(make_draft(description="   "))
        assert exc_info.value.field == "description"

    def test_unknown_type_rejected(self):
        """Test that the type is one of the four kinds."""
        with pytest.raises(ValidationError) as exc_info:
            validate_draft(make_draft(type="gift"))
        assert exc_info.value.field == "type"

    def test_unknown_field_rejected(self):
        """Test that extra fields are not silently dropped."""
        with pytest.raises(ValidationError):
            validate_draft(make_draft(currency="EUR"))

    def test_issues_list_every_problem(self):
        """Test that every offending field is reported."""
        with pytest.raises(ValidationError) as exc_info:
            validate_draft(make_draft(amount="-1", description=""))
        fields = {issue["field"] for issue in exc_info.value.issues}
        assert {"amount", "description"} <= fields

    def test_transaction_is_frozen(self):
        """Test that stored records cannot be mutated in place."""
        transaction = Transaction(id="t1", **validate_draft(make_draft()).model_dump())
        with pytest.raises(Exception):
            transaction.amount = Decimal("1")

    def test_transaction_requires_id(self):
        """Test that a persisted transaction has an id."""
        with pytest.raises(Exception):
            Transaction(**validate_draft(make_draft()).model_dump())


class TestTransactionUpdate:
    """Tests for partial updates."""

    def test_changes_only_supplied_fields(self):
        """Test that omitted fields are not part of the change set."""
        update = validate_update({"amount": "250.50"})
        assert update.changes() == {"amount": Decimal("250.50")}

    def test_explicit_none_category_is_a_change(self):
        """Test that clearing the category counts as a change."""
        update = validate_update({"category": None})
        assert update.changes() == {"category": None}

    def test_id_cannot_be_updated(self):
        """Test that the id is not an updatable field."""
        with pytest.raises(ValidationError):
            validate_update({"id": "other"})

    def test_update_rejects_bad_amount(self):
        """Test that updates are validated like drafts."""
        with pytest.raises(ValidationError):
            validate_update({"amount": "0"})


class TestGoalModels:
    """Tests for annual goals."""

    def test_goals_accept_camel_case(self):
        """Test that goals load from the camelCase document format."""
        goals = validate_goals({
            "year": 2024,
            "expectedProfit": "12000",
            "monthlyBudget": "1000",
            "emergencyReserve": "2400",
            "plannedInvestments": "0",
        })
        assert goals.expected_profit == Decimal("12000")
        assert goals.planned_investments == Decimal("0")

    def test_negative_goal_rejected(self):
        """Test that goals are never negative."""
        with pytest.raises(ValidationError) as exc_info:
            validate_goals({
                "year": 2024,
                "expected_profit": "-1",
                "monthly_budget": "1000",
                "emergency_reserve": "0",
                "planned_investments": "0",
            })
        assert exc_info.value.field == "expected_profit"

    def test_all_targets_required(self):
        """Test that a goal set is always complete."""
        with pytest.raises(ValidationError):
            validate_goals({"year": 2024, "expected_profit": "100"})

    def test_year_must_be_positive(self):
        """Test that the year is a positive integer."""
        with pytest.raises(PydanticValidationError) as exc_info:
            AnnualGoals.model_validate({
                "year": 0,
                "expected_profit": "1",
                "monthly_budget": "1",
                "emergency_reserve": "1",
                "planned_investments": "1",
            })
        assert exc_info.value.errors()[0]["loc"] == ("year",)


class TestDerivedModels:
    """Tests for aggregates and progress models."""

    def test_net_balance_subtracts_all_outflows(self):
        """Test that net balance is income minus every other bucket."""
        data = MonthlyData(
            month="2024-03",
            total_income=Decimal("1000"),
            total_expenses=Decimal("300"),
            total_savings=Decimal("100"),
            total_investments=Decimal("50"),
        )
        assert data.net_balance == Decimal("550")
        assert data.operating_balance == Decimal("700")

    def test_net_balance_is_serialized(self):
        """Test that net balance is part of the dumped aggregate."""
        data = AnnualData(year=2024, total_income=Decimal("10"))
        assert data.model_dump()["net_balance"] == Decimal("10")

    def test_has_activity(self):
        """Test that an empty period reports no activity."""
        assert MonthlyData(month="2024-01").has_activity is False
        assert MonthlyData(month="2024-01", total_savings=Decimal("1")).has_activity is True

    def test_expenses_within_budget(self):
        """Test the budget flag on progress."""
        progress = GoalProgress(year=2024, period_months=1, has_goals=True,
                                expense_progress=Decimal("100"))
        assert progress.expenses_within_budget is True
        assert GoalProgress(year=2024, period_months=1, has_goals=False).expenses_within_budget is None


class TestSnapshot:
    """Tests for the snapshot document."""

    def test_json_round_trip_keeps_decimals(self):
        """Test that money survives serialization exactly."""
        snapshot = FinanceSnapshot(
            transactions=[Transaction(id="t1", **validate_draft(make_draft(amount="0.10")).model_dump())],
            goals=[validate_goals({
                "year": 2024,
                "expected_profit": "12000.50",
                "monthly_budget": "1000",
                "emergency_reserve": "0",
                "planned_investments": "0",
            })],
        )
        payload = snapshot.to_json()
        assert '"expectedProfit"' in payload

        restored = FinanceSnapshot.from_json(payload)
        assert restored == snapshot
        assert restored.transactions[0].amount == Decimal("0.10")

    def test_invalid_document_raises_validation_error(self):
        """Test that a corrupt document surfaces as our ValidationError."""
        with pytest.raises(ValidationError):
            FinanceSnapshot.from_json('{"transactions": [{"id": "x"}]}')

    def test_draft_from_transaction(self):
        """Test that a persisted transaction converts back to a draft."""
        transaction = Transaction(id="t1", **validate_draft(make_draft()).model_dump())
        draft = validate_draft(transaction)
        assert type(draft) is TransactionDraft
        assert draft.amount == transaction.amount


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
