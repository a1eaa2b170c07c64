"""
Goal Progress Calculator

Compares aggregated actuals against a year's goals.

Targets are scaled to the period being viewed: a monthly view compares
against one month's worth of the budget, savings and investment goals,
an annual view against twelve. Income is compared with the full expected
profit in every view.

DESIGN DECISION: An undefined ratio is None, never zero.
- No goals for the year: every ratio is None and has_goals is False
- A zero target: that ratio is None
Callers can always tell "no goal" apart from "0% progress".
"""

from decimal import Decimal
from typing import Optional, Union

from finance_tracker.errors import ValidationError
from finance_tracker.models.finance import (
    AnnualData,
    AnnualGoals,
    GoalProgress,
    GoalTargets,
    MonthlyData,
)
from finance_tracker.aggregation.periods import parse_month_key


MONTHS_PER_YEAR = 12
_HUNDRED = Decimal("100")


def goal_targets(goals: AnnualGoals, period_months: int) -> GoalTargets:
    """
    Scale annual goals to a period of period_months months.

    - income progress is always measured against the whole expected profit
    - savings and investment goals are yearly, so they are prorated
    - the budget is already monthly, so it is multiplied
    """
    if not 1 <= period_months <= MONTHS_PER_YEAR:
        raise ValidationError(
            "period_months",
            f"period must be 1-{MONTHS_PER_YEAR} months, got {period_months}",
        )

    months = Decimal(period_months)

    return GoalTargets(
        period_months=period_months,
        income_target=goals.expected_profit,
        expense_limit=goals.monthly_budget * months,
        savings_target=goals.emergency_reserve * months / MONTHS_PER_YEAR,
        investment_target=goals.planned_investments * months / MONTHS_PER_YEAR,
    )


def progress_ratio(actual: Decimal, target: Decimal) -> Optional[Decimal]:
    """actual / target * 100, or None when the target is zero."""
    if target == 0:
        return None
    return actual / target * _HUNDRED


def calculate_progress(
    data: Union[MonthlyData, AnnualData],
    goals: Optional[AnnualGoals],
    period_months: int,
    year: int,
) -> GoalProgress:
    """
    Progress of data against goals over period_months months.

    Raises:
        ValidationError: if period_months is out of range or the goals
                         belong to a different year
    """
    if not 1 <= period_months <= MONTHS_PER_YEAR:
        raise ValidationError(
            "period_months",
            f"period must be 1-{MONTHS_PER_YEAR} months, got {period_months}",
        )

    if goals is None:
        return GoalProgress(year=year, period_months=period_months, has_goals=False)

    if goals.year != year:
        raise ValidationError(
            "year",
            f"goals for {goals.year} cannot be applied to {year}",
        )

    targets = goal_targets(goals, period_months)
    return GoalProgress(
        year=year,
        period_months=period_months,
        has_goals=True,
        targets=targets,
        income_progress=progress_ratio(data.total_income, targets.income_target),
        expense_progress=progress_ratio(data.total_expenses, targets.expense_limit),
        savings_progress=progress_ratio(data.total_savings, targets.savings_target),
        investment_progress=progress_ratio(data.total_investments, targets.investment_target),
    )


def monthly_progress(data: MonthlyData, goals: Optional[AnnualGoals]) -> GoalProgress:
    """Progress for one month: one month of budget, savings and investment goals."""
    year, _ = parse_month_key(data.month)
    return calculate_progress(data, goals, period_months=1, year=year)


def annual_progress(data: AnnualData, goals: Optional[AnnualGoals]) -> GoalProgress:
    """Progress for a full year against the full goals."""
    return calculate_progress(data, goals, period_months=MONTHS_PER_YEAR, year=data.year)
