"""Repository package."""

from finance_tracker.repository.repository import FinanceRepository

__all__ = ["FinanceRepository"]
