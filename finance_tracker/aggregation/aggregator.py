"""
Aggregation Engine

DESIGN DECISION: Aggregation is PURE.
Every function takes the transactions (and goals) it needs as arguments and
returns fresh derived models. Nothing is cached, so the caller can recompute
at any time against the current repository snapshot.

Money is summed as Decimal. The result never depends on the order in which
transactions arrive.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from finance_tracker.aggregation.periods import (
    month_key,
    parse_month_key,
    validate_year,
)
from finance_tracker.models.finance import (
    AnnualData,
    AnnualGoals,
    CategoryTotal,
    MonthlyData,
    Transaction,
    TransactionType,
)


# Which total each transaction type feeds
_TOTAL_FIELDS = {
    TransactionType.INCOME: "total_income",
    TransactionType.EXPENSE: "total_expenses",
    TransactionType.SAVINGS: "total_savings",
    TransactionType.INVESTMENT: "total_investments",
}

_SHARE_QUANTUM = Decimal("0.01")


def _empty_totals() -> dict[str, Decimal]:
    return {field: Decimal("0") for field in _TOTAL_FIELDS.values()}


def _accumulate(totals: dict[str, Decimal], transaction: Transaction) -> None:
    # Unknown types stay in the listing but count towards no total
    field = _TOTAL_FIELDS.get(transaction.type)
    if field is not None:
        totals[field] += Decimal(transaction.amount)


def _sum_by_type(transactions: list[Transaction]) -> dict[str, Decimal]:
    totals = _empty_totals()
    for transaction in transactions:
        _accumulate(totals, transaction)
    return totals


def monthly_data(transactions: Iterable[Transaction], month: str) -> MonthlyData:
    """
    Aggregate one calendar month.

    Args:
        transactions: Any iterable of transactions
        month: "YYYY-MM" key

    Returns:
        MonthlyData holding the month's transactions (input order) and
        per-type totals

    Raises:
        ValidationError: if month is not a valid YYYY-MM key
    """
    year, month_number = parse_month_key(month)
    key = month_key(year, month_number)

    selected = [t for t in transactions if t.month_key == key]
    return MonthlyData(month=key, transactions=selected, **_sum_by_type(selected))


def annual_data(transactions: Iterable[Transaction], year: int) -> AnnualData:
    """Aggregate one calendar year; net_balance is computed on the result."""
    validate_year(year)

    selected = [t for t in transactions if t.year == year]
    return AnnualData(year=year, transactions=selected, **_sum_by_type(selected))


def monthly_breakdown(transactions: Iterable[Transaction], year: int) -> list[MonthlyData]:
    """
    Month-by-month aggregates for a year.

    Always returns exactly 12 entries, January first. Months without
    transactions have zero totals and an empty transaction list.
    """
    validate_year(year)

    by_month: dict[int, list[Transaction]] = {month: [] for month in range(1, 13)}
    for transaction in transactions:
        if transaction.year == year:
            by_month[transaction.date.month].append(transaction)

    return [
        MonthlyData(
            month=month_key(year, month),
            transactions=selected,
            **_sum_by_type(selected),
        )
        for month, selected in by_month.items()
    ]


def months_with_data(transactions: Iterable[Transaction]) -> list[str]:
    """Distinct YYYY-MM keys that have at least one transaction, newest first."""
    return sorted({t.month_key for t in transactions}, reverse=True)


def years_with_data(
    transactions: Iterable[Transaction],
    goals: Iterable[AnnualGoals] = (),
) -> list[int]:
    """Distinct years appearing in transactions or goals, newest first."""
    years = {t.year for t in transactions}
    years.update(g.year for g in goals)
    return sorted(years, reverse=True)


def filter_by_type(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> list[Transaction]:
    return [t for t in transactions if t.type == transaction_type]


def sort_by_date(
    transactions: Iterable[Transaction],
    newest_first: bool = True,
) -> list[Transaction]:
    """Order transactions by date; same-day transactions keep their input order."""
    return sorted(transactions, key=lambda t: t.date, reverse=newest_first)


def category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType = TransactionType.EXPENSE,
    limit: Optional[int] = None,
) -> list[CategoryTotal]:
    """
    Totals per category for one transaction type.

    Missing categories are grouped under the "uncategorized" sentinel.
    Results are ordered by amount (largest first), ties by category name.
    share is the category's percentage of the type total, rounded to
    two places.

    Args:
        transactions: Transactions to group (typically one month or year)
        transaction_type: Which type to break down (expenses by default)
        limit: Keep only the top N categories
    """
    groups: dict[str, Decimal] = {}
    for transaction in transactions:
        if transaction.type != transaction_type:
            continue
        label = transaction.category_label
        groups[label] = groups.get(label, Decimal("0")) + Decimal(transaction.amount)

    grand_total = sum(groups.values(), Decimal("0"))

    ordered = sorted(groups.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ordered = ordered[:limit]

    result = []
    for category, amount in ordered:
        share = Decimal("0")
        if grand_total:
            share = (amount / grand_total * 100).quantize(_SHARE_QUANTUM, rounding=ROUND_HALF_UP)
        result.append(CategoryTotal(category=category, amount=amount, share=share))
    return result
