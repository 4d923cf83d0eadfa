"""Meal-plan template model (read-only structure consumed by the engine)."""

from __future__ import annotations

from mealtrack.templates.models import (
    AdHocFood,
    CatalogFood,
    CustomFood,
    DailyPlan,
    Food,
    MealPlan,
    MealTime,
    PlannedFoodItem,
    PlanStatus,
    Unit,
)

__all__ = [
    "AdHocFood",
    "CatalogFood",
    "CustomFood",
    "DailyPlan",
    "Food",
    "MealPlan",
    "MealTime",
    "PlannedFoodItem",
    "PlanStatus",
    "Unit",
]
