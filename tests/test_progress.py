"""
Tests for goal progress.
"""

import pytest
from decimal import Decimal

from finance_tracker.aggregation import annual_data, monthly_data
from finance_tracker.errors import ValidationError
from finance_tracker.models.finance import (
    AnnualData,
    AnnualGoals,
    MonthlyData,
    Transaction,
)
from finance_tracker.progress import (
    annual_progress,
    calculate_progress,
    goal_targets,
    monthly_progress,
    progress_ratio,
)


def make_goals(year=2024, expected_profit="12000", monthly_budget="1000",
               emergency_reserve="2400", planned_investments="1200"):
    return AnnualGoals(
        year=year,
        expected_profit=Decimal(expected_profit),
        monthly_budget=Decimal(monthly_budget),
        emergency_reserve=Decimal(emergency_reserve),
        planned_investments=Decimal(planned_investments),
    )


class TestTargets:
    """Tests for scaling goals to a period."""

    def test_annual_targets(self):
        targets = goal_targets(make_goals(), 12)
        assert targets.income_target == Decimal("12000")
        assert targets.expense_limit == Decimal("12000")
        assert targets.savings_target == Decimal("2400")
        assert targets.investment_target == Decimal("1200")

    def test_monthly_targets(self):
        """Test that savings goals are prorated and the budget is per month."""
        targets = goal_targets(make_goals(), 1)
        assert targets.income_target == Decimal("12000")
        assert targets.expense_limit == Decimal("1000")
        assert targets.savings_target == Decimal("200")
        assert targets.investment_target == Decimal("100")

    @pytest.mark.parametrize("months", [0, 13])
    def test_period_out_of_range(self, months):
        with pytest.raises(ValidationError) as exc_info:
            goal_targets(make_goals(), months)
        assert exc_info.value.field == "period_months"


class TestProgressRatio:
    """Tests for the raw ratio."""

    def test_ratio(self):
        assert progress_ratio(Decimal("250"), Decimal("1000")) == Decimal("25")

    def test_zero_target_is_undefined(self):
        assert progress_ratio(Decimal("250"), Decimal("0")) is None

    def test_ratio_is_not_clamped(self):
        assert progress_ratio(Decimal("300"), Decimal("100")) == Decimal("300")


class TestAnnualProgress:
    """Tests for progress over a full year."""

    def test_expense_progress_scenario(self):
        """Test that 3000 spent against a 1000 monthly budget is 25%."""
        data = AnnualData(year=2024, total_expenses=Decimal("3000"))
        progress = annual_progress(data, make_goals())
        assert progress.has_goals is True
        assert progress.expense_progress == Decimal("25")
        assert progress.expenses_within_budget is True

    def test_income_above_target(self):
        data = AnnualData(year=2024, total_income=Decimal("18000"))
        progress = annual_progress(data, make_goals())
        assert progress.income_progress == Decimal("150")

    def test_without_goals(self):
        """Test that missing goals give undefined ratios, not zero."""
        progress = annual_progress(AnnualData(year=2024), None)
        assert progress.has_goals is False
        assert progress.targets is None
        assert progress.income_progress is None
        assert progress.expense_progress is None
        assert progress.savings_progress is None
        assert progress.investment_progress is None

    def test_zero_target_only_affects_its_ratio(self):
        data = AnnualData(
            year=2024,
            total_investments=Decimal("500"),
            total_savings=Decimal("1200"),
        )
        progress = annual_progress(data, make_goals(planned_investments="0"))
        assert progress.investment_progress is None
        assert progress.savings_progress == Decimal("50")

    def test_goals_for_another_year_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            annual_progress(AnnualData(year=2024), make_goals(year=2023))
        assert exc_info.value.field == "year"


class TestMonthlyProgress:
    """Tests for progress over one month."""

    def test_monthly_progress_from_transactions(self):
        transactions = [
            Transaction(id="1", date="2024-03-01", type="income", amount="1200", description="pay"),
            Transaction(id="2", date="2024-03-02", type="expense", amount="1200", description="rent"),
            Transaction(id="3", date="2024-04-01", type="expense", amount="999", description="later"),
        ]
        progress = monthly_progress(monthly_data(transactions, "2024-03"), make_goals())
        assert progress.period_months == 1
        assert progress.income_progress == Decimal("10")
        assert progress.expense_progress == Decimal("120")
        assert progress.expenses_within_budget is False

    def test_monthly_income_measured_against_expected_profit(self):
        """Test that one month of income is not compared with a twelfth of the goal."""
        data = MonthlyData(month="2024-03", total_income=Decimal("1000"))
        progress = monthly_progress(data, make_goals())
        assert progress.income_progress == Decimal("1000") / Decimal("12000") * 100

    def test_monthly_year_comes_from_month(self):
        progress = monthly_progress(MonthlyData(month="2023-06"), None)
        assert progress.year == 2023

    def test_monthly_rejects_other_years_goals(self):
        with pytest.raises(ValidationError):
            monthly_progress(MonthlyData(month="2023-06"), make_goals(year=2024))

    def test_quarter_progress(self):
        """Test an arbitrary period length."""
        data = annual_data([], 2024)
        progress = calculate_progress(data, make_goals(), period_months=3, year=2024)
        assert progress.targets.income_target == Decimal("12000")
        assert progress.targets.expense_limit == Decimal("3000")
        assert progress.income_progress == Decimal("0")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
