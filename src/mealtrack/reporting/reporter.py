"""Goal adherence reporting over date windows.

The reporter only reads. Every figure is recomputed from scheduled meals,
their consumption records and manual entries on each call:

    counted nutrition per meal  -> period totals -> daily averages
    daily averages / goal       -> adherence percentage
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from mealtrack.config import Settings, get_settings
from mealtrack.db import DatabaseConnection, get_db
from mealtrack.db.connection import read_with_retry
from mealtrack.errors import ValidationError
from mealtrack.nutrition.aggregator import day_totals, period_totals, totals_by_day
from mealtrack.nutrition.loader import summarize_meals
from mealtrack.nutrition.models import MACROS, Nutrition
from mealtrack.reporting.goals import CalorieGoal, GoalQueries
from mealtrack.reporting.models import (
    DailyLog,
    GoalProgress,
    MacroAdherence,
    MealTypeBreakdown,
    PeriodReport,
    TrackingStats,
)
from mealtrack.scheduling.queries import ScheduledMealQueries
from mealtrack.session import SessionContext
from mealtrack.tracking.models import BREAKDOWN_MEAL_TYPES, FoodEntry
from mealtrack.tracking.queries import FoodEntryQueries

logger = logging.getLogger(__name__)


def _percentage(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def _check_window(date_from: date, date_to: date) -> None:
    if date_to < date_from:
        raise ValidationError(
            f"date_to ({date_to.isoformat()}) must not be before "
            f"date_from ({date_from.isoformat()})"
        )


def goal_adherence(
    averages: Nutrition, goal: Optional[CalorieGoal]
) -> dict[str, MacroAdherence]:
    """Adherence per macro that has a target; macros without one are omitted."""
    if goal is None:
        return {}
    return {
        macro: MacroAdherence(
            goal=target,
            average_consumed=round(averages.get(macro), 2),
            adherence_percentage=_percentage(averages.get(macro), target),
        )
        for macro, target in goal.targets().items()
    }


def meal_type_breakdown(entries: list[FoodEntry]) -> dict[str, MealTypeBreakdown]:
    """Count and nutrition of manual entries per meal type.

    Entries tagged 'other' are not bucketed; they still count in totals.
    """
    breakdown = {mt.value: MealTypeBreakdown() for mt in BREAKDOWN_MEAL_TYPES}
    for entry in entries:
        bucket = breakdown.get(entry.meal_type.value)
        if bucket is None:
            continue
        bucket.count += 1
        bucket.nutrition = bucket.nutrition + entry.nutrition
    return breakdown


def goal_progress(consumed: Nutrition, goal: Optional[CalorieGoal]) -> dict[str, GoalProgress]:
    if goal is None:
        return {}
    return {
        macro: GoalProgress(
            consumed=round(consumed.get(macro), 2),
            goal=target,
            remaining=round(target - consumed.get(macro), 2),
            percentage=_percentage(consumed.get(macro), target),
        )
        for macro, target in goal.targets().items()
    }


class GoalAdherenceReporter:
    """Aggregates consumption into period reports and daily logs."""

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db or get_db()
        self.settings = settings or get_settings()

    @read_with_retry
    def report(self, session: SessionContext, date_from: date, date_to: date) -> PeriodReport:
        """Totals, averages, goal adherence and meal-type breakdown.

        Args:
            session: Caller session
            date_from: First day (inclusive)
            date_to: Last day (inclusive)

        Returns:
            PeriodReport over date_to - date_from + 1 days

        Raises:
            ValidationError: If date_to is before date_from
        """
        session.require_valid()
        _check_window(date_from, date_to)

        with self.db.get_connection() as conn:
            meals = ScheduledMealQueries.list_for_user(conn, session.user_id, date_from, date_to)
            summaries = summarize_meals(conn, meals)
            entries = FoodEntryQueries.list_for_range(conn, session.user_id, date_from, date_to)
            goal = GoalQueries.get_active_goal(conn, session.user_id)

        total_days = (date_to - date_from).days + 1
        totals = period_totals(summaries, entries).total
        averages = Nutrition(**{m: totals.get(m) / total_days for m in MACROS})

        if goal is None:
            logger.info("No active goal for user %d; adherence omitted", session.user_id)

        return PeriodReport(
            date_from=date_from,
            date_to=date_to,
            total_days=total_days,
            totals=totals,
            averages=averages,
            goal_adherence=goal_adherence(averages, goal),
            meal_type_breakdown=meal_type_breakdown(entries),
            daily_totals=totals_by_day(summaries, entries),
        )

    @read_with_retry
    def tracking_stats(
        self, session: SessionContext, date_from: date, date_to: date
    ) -> TrackingStats:
        """Completion rate and consumed-vs-planned nutrition of scheduled meals."""
        session.require_valid()
        _check_window(date_from, date_to)

        with self.db.get_connection() as conn:
            meals = ScheduledMealQueries.list_for_user(conn, session.user_id, date_from, date_to)
            summaries = summarize_meals(conn, meals)

        completed = sum(1 for s in summaries if s.is_completed)
        consumed = Nutrition.total(s.counted_nutrition for s in summaries)
        planned = Nutrition.total(s.planned_nutrition for s in summaries)

        return TrackingStats(
            date_from=date_from,
            date_to=date_to,
            total_meals=len(summaries),
            completed_meals=completed,
            completion_rate=_percentage(completed, len(summaries)),
            consumed=consumed,
            planned=planned,
            adherence_percentage={
                macro: _percentage(consumed.get(macro), planned.get(macro)) for macro in MACROS
            },
        )

    @read_with_retry
    def daily_log(self, session: SessionContext, day: date) -> DailyLog:
        """One day's meals, manual entries, totals and goal progress."""
        session.require_valid()

        with self.db.get_connection() as conn:
            meals = ScheduledMealQueries.list_for_user(conn, session.user_id, day, day)
            summaries = summarize_meals(conn, meals)
            entries = FoodEntryQueries.list_for_range(conn, session.user_id, day, day)
            goal = GoalQueries.get_active_goal(conn, session.user_id)

        totals = day_totals(summaries, entries, day=day)
        return DailyLog(
            day=day,
            totals=totals,
            meals=summaries,
            entries=entries,
            goal_progress=goal_progress(totals.total, goal),
        )

    def set_goal(self, session: SessionContext, goal: CalorieGoal) -> CalorieGoal:
        """Replace the caller's active goal."""
        session.require_valid()
        if goal.user_id != session.user_id:
            raise ValidationError("A goal can only be set for the session user")
        if not goal.targets():
            raise ValidationError("A goal needs at least one daily target")
        with self.db.get_connection() as conn:
            GoalQueries.set_goal(conn, goal)
            stored = GoalQueries.get_active_goal(conn, session.user_id)
        logger.info("Set nutrition goal for user %d", session.user_id)
        return stored

    @read_with_retry
    def get_goal(self, session: SessionContext) -> Optional[CalorieGoal]:
        session.require_valid()
        with self.db.get_connection() as conn:
            return GoalQueries.get_active_goal(conn, session.user_id)
