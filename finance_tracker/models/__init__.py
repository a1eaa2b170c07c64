"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.finance import (
    UNCATEGORIZED,
    AnnualData,
    AnnualGoals,
    CategoryTotal,
    FinanceSnapshot,
    GoalProgress,
    GoalTargets,
    MonthlyData,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    validate_draft,
    validate_goals,
    validate_transaction,
    validate_update,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "UNCATEGORIZED",
    "AnnualData",
    "AnnualGoals",
    "CategoryTotal",
    "FinanceSnapshot",
    "GoalProgress",
    "GoalTargets",
    "MonthlyData",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "TransactionUpdate",
    "validate_draft",
    "validate_goals",
    "validate_transaction",
    "validate_update",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
