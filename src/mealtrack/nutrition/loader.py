"""Load scheduled meals with their template slice and consumption."""

from __future__ import annotations

import sqlite3
from typing import Sequence

from mealtrack.errors import NotFoundError
from mealtrack.nutrition.aggregator import MealSummary, summarize_meal
from mealtrack.scheduling.models import ScheduledMeal
from mealtrack.templates.models import MealTime
from mealtrack.templates.queries import TemplateQueries
from mealtrack.tracking.queries import ConsumedFoodQueries


def summarize_meals(
    conn: sqlite3.Connection, meals: Sequence[ScheduledMeal]
) -> list[MealSummary]:
    """Summaries for a batch of scheduled meals, in the given order.

    Each distinct meal time is read from the template once per call.
    """
    meal_times: dict[int, MealTime] = {}
    for meal in meals:
        if meal.meal_time_id not in meal_times:
            meal_time = TemplateQueries.get_meal_time(conn, meal.meal_time_id)
            if meal_time is None:
                raise NotFoundError("meal_time", meal.meal_time_id)
            meal_times[meal.meal_time_id] = meal_time

    consumed = ConsumedFoodQueries.list_for_meals(
        conn, [m.scheduled_meal_id for m in meals]
    )
    return [
        summarize_meal(meal, meal_times[meal.meal_time_id], consumed[meal.scheduled_meal_id])
        for meal in meals
    ]


def summarize_one(conn: sqlite3.Connection, meal: ScheduledMeal) -> MealSummary:
    return summarize_meals(conn, [meal])[0]
