"""Data models for consumption tracking and the manual food log."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from mealtrack.nutrition.models import Nutrition
from mealtrack.templates.models import Food, Unit


class MealType(Enum):
    """Meal tag on manual food-log entries."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    OTHER = "other"


# Buckets reported in the meal-type breakdown ('other' is counted in totals only)
BREAKDOWN_MEAL_TYPES = (MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER, MealType.SNACK)


@dataclass
class ConsumedFood:
    """What was actually eaten against one planned food item."""

    consumed_food_id: Optional[int]
    scheduled_meal_id: int
    planned_food_item_id: int
    consumed_amount: float
    consumed_unit: Unit
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class FoodEntry:
    """A manual, non-scheduled food-log entry."""

    entry_id: Optional[int]
    user_id: int
    food: Food
    amount: float
    unit: Unit
    meal_type: MealType
    consumed_on: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def nutrition(self) -> Nutrition:
        """Logged value; manual entries are never snapped to a plan."""
        return self.food.scale(self.amount)


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of an idempotent delete.

    `already_absent` is informational: the record was gone before this call
    (stale id or an earlier delete). `replayed` means the idempotency key was
    seen before and the stored outcome was returned without touching state.
    """

    resource: str
    resource_id: int
    deleted: bool
    already_absent: bool = False
    replayed: bool = False
