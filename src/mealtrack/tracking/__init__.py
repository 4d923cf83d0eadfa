"""Consumption tracking against scheduled meals, plus the manual food log."""

from __future__ import annotations

from mealtrack.tracking.models import (
    BREAKDOWN_MEAL_TYPES,
    ConsumedFood,
    DeleteResult,
    FoodEntry,
    MealType,
)

__all__ = [
    "BREAKDOWN_MEAL_TYPES",
    "ConsumedFood",
    "DeleteResult",
    "FoodEntry",
    "MealType",
]
