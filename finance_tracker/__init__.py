"""
Finance Tracker - Source Package

A personal finance tracker for one signed-in user: income, expenses,
savings and investments, with monthly and annual summaries and progress
towards yearly goals.

DESIGN PRINCIPLES:
1. Money is exact (Decimal), never float
2. Fail early, fail visibly
3. No silent corrections
4. The in-memory repository is the single writer; aggregation is pure
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
