"""Roll consumption up into completion percentages and nutrition totals.

All functions here are pure: they take model objects and return new value
objects. Nothing is cached; callers recompute from leaf quantities on every
read.

Two completion measures exist and are intentionally different:

- item level: consumed amount / planned amount (can exceed 100)
- meal level: fully consumed items / planned items (count based)

When a meal is complete its *planned* nutrition is what counts toward day
and period totals, so rounding noise in logged amounts does not leak into
reports. An incomplete meal counts what was actually logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from mealtrack.nutrition.models import Nutrition
from mealtrack.scheduling.models import ScheduledMeal
from mealtrack.templates.models import MealTime, PlannedFoodItem
from mealtrack.tracking.models import ConsumedFood, FoodEntry


@dataclass(frozen=True)
class ItemCompletion:
    """Completion of one planned food item."""

    completion_percentage: float
    is_fully_consumed: bool


@dataclass
class ConsumedItemSummary:
    """A consumption record joined with the planned item it refers to."""

    consumed: ConsumedFood
    planned: PlannedFoodItem
    nutrition: Nutrition
    completion: ItemCompletion


@dataclass
class MealSummary:
    """Derived state of one scheduled meal."""

    scheduled_meal: ScheduledMeal
    meal_time: MealTime
    total_foods_count: int
    consumed_foods_count: int
    fully_consumed_count: int
    completion_percentage: float
    is_completed: bool
    planned_nutrition: Nutrition
    consumed_nutrition: Nutrition
    items: list[ConsumedItemSummary] = field(default_factory=list)

    @property
    def counted_nutrition(self) -> Nutrition:
        """Nutrition this meal contributes to day and period totals."""
        return self.planned_nutrition if self.is_completed else self.consumed_nutrition


@dataclass
class DayTotals:
    """Nutrition totals for a day or a period."""

    scheduled: Nutrition = field(default_factory=Nutrition)
    manual: Nutrition = field(default_factory=Nutrition)
    meals_count: int = 0
    entries_count: int = 0
    day: Optional[date] = None

    @property
    def total(self) -> Nutrition:
        return self.scheduled + self.manual


def item_completion(consumed_amount: float, planned_amount: float) -> ItemCompletion:
    """Completion of a single item.

    Args:
        consumed_amount: Logged amount
        planned_amount: Planned amount in the same unit

    Returns:
        ItemCompletion with the percentage rounded to 2 decimals. Values
        above 100 are kept so over-consumption stays visible.
    """
    if planned_amount <= 0:
        return ItemCompletion(completion_percentage=100.0, is_fully_consumed=True)
    percentage = round(consumed_amount / planned_amount * 100, 2)
    return ItemCompletion(
        completion_percentage=percentage,
        is_fully_consumed=consumed_amount >= planned_amount,
    )


def consumed_nutrition(planned: PlannedFoodItem, consumed: ConsumedFood) -> Nutrition:
    """Nutrition of a logged amount of the planned item's food."""
    return planned.food.scale(consumed.consumed_amount)


def summarize_meal(
    scheduled_meal: ScheduledMeal,
    meal_time: MealTime,
    consumed_foods: Iterable[ConsumedFood],
) -> MealSummary:
    """Compute the derived state of one scheduled meal.

    Consumption records whose planned item is not part of `meal_time` are
    ignored; the tracker never writes such records.
    """
    items: list[ConsumedItemSummary] = []
    for record in consumed_foods:
        planned = meal_time.find_item(record.planned_food_item_id)
        if planned is None:
            continue
        items.append(
            ConsumedItemSummary(
                consumed=record,
                planned=planned,
                nutrition=consumed_nutrition(planned, record),
                completion=item_completion(record.consumed_amount, planned.amount),
            )
        )

    total = len(meal_time.food_items)
    fully = sum(1 for item in items if item.completion.is_fully_consumed)
    percentage = round(fully / total * 100, 2) if total else 0.0

    return MealSummary(
        scheduled_meal=scheduled_meal,
        meal_time=meal_time,
        total_foods_count=total,
        consumed_foods_count=len(items),
        fully_consumed_count=fully,
        completion_percentage=percentage,
        is_completed=total > 0 and fully == total,
        planned_nutrition=meal_time.nutrition,
        consumed_nutrition=Nutrition.total(item.nutrition for item in items),
        items=items,
    )


def day_totals(
    meal_summaries: Sequence[MealSummary],
    food_entries: Sequence[FoodEntry],
    day: Optional[date] = None,
) -> DayTotals:
    """Totals for one day: counted meal nutrition plus manual entries."""
    return DayTotals(
        scheduled=Nutrition.total(m.counted_nutrition for m in meal_summaries),
        manual=Nutrition.total(e.nutrition for e in food_entries),
        meals_count=len(meal_summaries),
        entries_count=len(food_entries),
        day=day,
    )


def period_totals(
    meal_summaries: Sequence[MealSummary],
    food_entries: Sequence[FoodEntry],
) -> DayTotals:
    """Totals over any window; same rule as day_totals."""
    return day_totals(meal_summaries, food_entries)


def totals_by_day(
    meal_summaries: Sequence[MealSummary],
    food_entries: Sequence[FoodEntry],
) -> dict[date, DayTotals]:
    """Split a window into per-day totals, ordered by date."""
    meals: dict[date, list[MealSummary]] = {}
    for summary in meal_summaries:
        meals.setdefault(summary.scheduled_meal.scheduled_date, []).append(summary)
    entries: dict[date, list[FoodEntry]] = {}
    for entry in food_entries:
        entries.setdefault(entry.consumed_on, []).append(entry)

    return {
        day: day_totals(meals.get(day, []), entries.get(day, []), day=day)
        for day in sorted(set(meals) | set(entries))
    }
