"""Expand a meal-plan template into dated scheduled meals.

Given a template, a set of weekdays, a number of weeks and a start date,
the matching calendar dates are walked in order and each one receives the
next template day, cycling day1..dayN:

    dates:      Mon 1  Wed 3  Mon 8  Wed 10
    template:   day1   day2   day1   day2      (N = 2)

Each assigned day contributes one ScheduledMeal per meal time. The
function is pure: it reads nothing and writes nothing.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from mealtrack.errors import ValidationError
from mealtrack.scheduling.models import MAX_WEEKS, MIN_WEEKS, ScheduledMeal, Weekday
from mealtrack.templates.models import MealPlan

logger = logging.getLogger(__name__)


def validate_recurrence(
    selected_weekdays: Iterable[Weekday],
    weeks_count: int,
    start_date: date,
    today: Optional[date] = None,
) -> frozenset[Weekday]:
    """Check recurrence parameters.

    Returns:
        The weekday set, frozen

    Raises:
        ValidationError: On an empty weekday set, a weeks count outside
            [1, 52] or a start date before today
    """
    days = frozenset(selected_weekdays)
    if not days:
        raise ValidationError("At least one weekday must be selected")
    if isinstance(weeks_count, bool) or not isinstance(weeks_count, int):
        raise ValidationError(f"weeks_count must be an integer, got {weeks_count!r}")
    if not MIN_WEEKS <= weeks_count <= MAX_WEEKS:
        raise ValidationError(
            f"weeks_count must be between {MIN_WEEKS} and {MAX_WEEKS}, got {weeks_count}"
        )
    today = today or date.today()
    if start_date < today:
        raise ValidationError(
            f"start_date {start_date.isoformat()} is in the past (today is {today.isoformat()})"
        )
    return days


def matching_dates(
    selected_weekdays: Iterable[Weekday], weeks_count: int, start_date: date
) -> list[date]:
    """Dates in [start_date, start_date + 7*weeks_count) on a selected weekday."""
    wanted = {d.index for d in selected_weekdays}
    return [
        day
        for day in (start_date + timedelta(days=i) for i in range(weeks_count * 7))
        if day.weekday() in wanted
    ]


def expand(
    template: MealPlan,
    selected_weekdays: Iterable[Weekday],
    weeks_count: int,
    start_date: date,
    today: Optional[date] = None,
) -> list[ScheduledMeal]:
    """Expand a template into scheduled meals.

    Args:
        template: Template with daily plans and meal times
        selected_weekdays: Non-empty set of weekdays
        weeks_count: Number of weeks, 1..52
        start_date: First day of the window, not before today
        today: Reference date for the past-date check (default: date.today())

    Returns:
        Scheduled meals ordered by date, then meal-time order. Empty when the
        template has no daily plans.

    Raises:
        ValidationError: If the recurrence parameters are invalid
    """
    days = validate_recurrence(selected_weekdays, weeks_count, start_date, today)

    daily_plans = template.ordered_daily_plans
    if not daily_plans:
        logger.info("Template %s has no daily plans; nothing to schedule", template.meal_plan_id)
        return []

    meals: list[ScheduledMeal] = []
    for i, day in enumerate(matching_dates(days, weeks_count, start_date)):
        daily_plan = daily_plans[i % len(daily_plans)]
        week_number = (day - start_date).days // 7 + 1
        for sequence, meal_time in enumerate(
            sorted(daily_plan.meal_times, key=lambda mt: mt.order)
        ):
            meals.append(
                ScheduledMeal(
                    scheduled_meal_id=None,
                    scheduled_date=day,
                    week_number=week_number,
                    daily_plan_id=daily_plan.daily_plan_id,
                    daily_plan_position=daily_plan.position,
                    meal_time_id=meal_time.meal_time_id,
                    meal_time_name=meal_time.name,
                    meal_time_time=meal_time.time_of_day,
                    is_completed=False,
                    sequence=sequence,
                )
            )

    logger.debug(
        "Expanded template %s over %d week(s) into %d scheduled meals",
        template.meal_plan_id, weeks_count, len(meals),
    )
    return meals
