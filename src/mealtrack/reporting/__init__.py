"""Goal adherence reporting."""

from __future__ import annotations

from mealtrack.reporting.goals import CalorieGoal, GoalQueries
from mealtrack.reporting.models import (
    DailyLog,
    GoalProgress,
    MacroAdherence,
    MealTypeBreakdown,
    PeriodReport,
    TrackingStats,
)

__all__ = [
    "CalorieGoal",
    "DailyLog",
    "GoalProgress",
    "GoalQueries",
    "MacroAdherence",
    "MealTypeBreakdown",
    "PeriodReport",
    "TrackingStats",
]
