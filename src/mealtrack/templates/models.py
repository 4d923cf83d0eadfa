"""Data models for meal-plan templates.

A template is a read-only hierarchy:

    MealPlan -> DailyPlan (day1..day7) -> MealTime -> PlannedFoodItem -> Food

Every aggregate total is computed from its children on access; nothing
above PlannedFoodItem stores nutrition of its own.

Foods come in three variants that differ in where their nutrition comes
from and how it scales:

- CatalogFood: shared reference data, values per serving
- CustomFood: a user's own food, values per serving
- AdHocFood: a "quick add" entry whose values already describe the logged
  amount and are not scaled; they belong to the food log only, never to a
  PlannedFoodItem
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import ClassVar, Optional, Union

from mealtrack.nutrition.models import Nutrition


class Unit(Enum):
    """Closed set of amount units. No conversion is done between them."""

    GRAM = "gram"
    ML = "ml"
    PIECE = "piece"
    CUP = "cup"
    TBSP = "tbsp"
    TSP = "tsp"


class PlanStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


VALID_GOALS = (
    "weight_loss",
    "weight_gain",
    "muscle_gain",
    "maintenance",
    "athletic_performance",
    "general_health",
)


@dataclass(frozen=True)
class CatalogFood:
    """Reference food from the shared catalog."""

    kind: ClassVar[str] = "catalog"

    food_id: Optional[int]
    name: str
    serving_size: float
    serving_unit: Unit
    per_serving: Nutrition

    def scale(self, amount: float) -> Nutrition:
        """Nutrition for `amount` in serving units."""
        if self.serving_size <= 0:
            return Nutrition()
        return self.per_serving.scaled(amount / self.serving_size)


@dataclass(frozen=True)
class CustomFood:
    """Food defined by one user, same scaling rule as catalog foods."""

    kind: ClassVar[str] = "custom"

    food_id: Optional[int]
    name: str
    serving_size: float
    serving_unit: Unit
    per_serving: Nutrition
    owner_user_id: Optional[int] = None

    def scale(self, amount: float) -> Nutrition:
        if self.serving_size <= 0:
            return Nutrition()
        return self.per_serving.scaled(amount / self.serving_size)


@dataclass(frozen=True)
class AdHocFood:
    """Quick-add food: nutrition is absolute for the logged amount."""

    kind: ClassVar[str] = "adhoc"

    food_id: Optional[int]
    name: str
    nutrition: Nutrition
    serving_unit: Unit = Unit.PIECE

    @property
    def serving_size(self) -> float:
        return 1.0

    @property
    def per_serving(self) -> Nutrition:
        return self.nutrition

    def scale(self, amount: float) -> Nutrition:
        return self.nutrition


Food = Union[CatalogFood, CustomFood, AdHocFood]

FOOD_KINDS = ("catalog", "custom", "adhoc")


@dataclass
class PlannedFoodItem:
    """A food placed into a meal time with a planned quantity."""

    planned_food_item_id: Optional[int]
    food: Food
    amount: float
    unit: Unit
    order: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.food, AdHocFood):
            raise ValueError(
                f"'{self.food.name}' is a quick-add food and cannot be planned"
            )

    @property
    def nutrition(self) -> Nutrition:
        return self.food.scale(self.amount)


@dataclass
class MealTime:
    """A named slot within a daily plan (e.g. Breakfast at 08:00)."""

    meal_time_id: Optional[int]
    name: str
    time_of_day: Optional[time] = None
    food_items: list[PlannedFoodItem] = field(default_factory=list)
    order: int = 0

    @property
    def nutrition(self) -> Nutrition:
        return Nutrition.total(item.nutrition for item in self.food_items)

    def find_item(self, planned_food_item_id: int) -> Optional[PlannedFoodItem]:
        for item in self.food_items:
            if item.planned_food_item_id == planned_food_item_id:
                return item
        return None


@dataclass
class DailyPlan:
    """One template day. `position` is 1..7 (day1..day7), not a weekday."""

    daily_plan_id: Optional[int]
    position: int
    meal_times: list[MealTime] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not 1 <= self.position <= 7:
            raise ValueError(f"position must be between 1 and 7, got {self.position}")

    @property
    def day(self) -> str:
        return f"day{self.position}"

    @property
    def nutrition(self) -> Nutrition:
        return Nutrition.total(mt.nutrition for mt in self.meal_times)


@dataclass
class MealPlan:
    """Reusable meal-plan template."""

    meal_plan_id: Optional[int]
    title: str
    daily_plans: list[DailyPlan] = field(default_factory=list)
    description: Optional[str] = None
    goal: Optional[str] = None
    status: PlanStatus = PlanStatus.DRAFT
    is_public: bool = False
    created_by: Optional[int] = None

    def __post_init__(self) -> None:
        if self.goal is not None and self.goal not in VALID_GOALS:
            raise ValueError(f"goal must be one of {VALID_GOALS}, got '{self.goal}'")
        positions = [dp.position for dp in self.daily_plans]
        if len(positions) != len(set(positions)):
            raise ValueError(f"duplicate daily plan positions: {positions}")

    @property
    def ordered_daily_plans(self) -> list[DailyPlan]:
        """Daily plans in template order (day1 first)."""
        return sorted(self.daily_plans, key=lambda dp: dp.position)

    @property
    def nutrition(self) -> Nutrition:
        return Nutrition.total(dp.nutrition for dp in self.daily_plans)

    def find_meal_time(self, meal_time_id: int) -> Optional[MealTime]:
        for dp in self.daily_plans:
            for mt in dp.meal_times:
                if mt.meal_time_id == meal_time_id:
                    return mt
        return None
