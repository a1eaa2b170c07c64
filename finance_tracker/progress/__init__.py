"""Goal progress package."""

from finance_tracker.progress.calculator import (
    annual_progress,
    calculate_progress,
    goal_targets,
    monthly_progress,
    progress_ratio,
)

__all__ = [
    "annual_progress",
    "calculate_progress",
    "goal_targets",
    "monthly_progress",
    "progress_ratio",
]
