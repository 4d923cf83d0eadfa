"""Expansion of templates into dated scheduled meals."""

from __future__ import annotations

from mealtrack.scheduling.expander import expand, matching_dates, validate_recurrence
from mealtrack.scheduling.models import (
    AppliedMealPlan,
    AppliedSchedule,
    PlanSource,
    RecurrenceRequest,
    ScheduledMeal,
    Weekday,
)

__all__ = [
    "AppliedMealPlan",
    "AppliedSchedule",
    "PlanSource",
    "RecurrenceRequest",
    "ScheduledMeal",
    "Weekday",
    "expand",
    "matching_dates",
    "validate_recurrence",
]
