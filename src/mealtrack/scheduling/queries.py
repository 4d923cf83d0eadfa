"""Database queries for applied meal plans and scheduled meals."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime, time
from typing import Optional

from mealtrack.scheduling.models import (
    AppliedMealPlan,
    PlanSource,
    ScheduledMeal,
    Weekday,
)


def _applied_plan_from_row(row: sqlite3.Row) -> AppliedMealPlan:
    return AppliedMealPlan(
        applied_plan_id=row["applied_plan_id"],
        user_id=row["user_id"],
        meal_plan_id=row["meal_plan_id"],
        selected_days=[Weekday(d) for d in json.loads(row["selected_days"])],
        weeks_count=row["weeks_count"],
        start_date=date.fromisoformat(row["start_date"]),
        is_active=bool(row["is_active"]),
        source=PlanSource(row["source"]),
        assigned_by=row["assigned_by"],
        deactivated_on=(
            date.fromisoformat(row["deactivated_on"]) if row["deactivated_on"] else None
        ),
        meal_plan_title=row["title"],
        created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
    )


def _scheduled_meal_from_row(row: sqlite3.Row) -> ScheduledMeal:
    return ScheduledMeal(
        scheduled_meal_id=row["scheduled_meal_id"],
        scheduled_date=date.fromisoformat(row["scheduled_date"]),
        week_number=row["week_number"],
        daily_plan_id=row["daily_plan_id"],
        daily_plan_position=row["position"],
        meal_time_id=row["meal_time_id"],
        meal_time_name=row["meal_time_name"],
        meal_time_time=time.fromisoformat(row["time_of_day"]) if row["time_of_day"] else None,
        applied_plan_id=row["applied_plan_id"],
        user_id=row["user_id"],
        is_active=bool(row["is_active"]),
        is_completed=bool(row["is_completed"]),
        completed_at=(
            datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
        ),
        sequence=row["sequence"],
    )


_APPLIED_SELECT = """
    SELECT a.*, m.title
    FROM applied_meal_plans a
    JOIN meal_plans m ON m.meal_plan_id = a.meal_plan_id
"""

_SCHEDULED_SELECT = """
    SELECT s.*, d.position, mt.name AS meal_time_name, mt.time_of_day
    FROM scheduled_meals s
    JOIN daily_plans d ON d.daily_plan_id = s.daily_plan_id
    JOIN meal_times mt ON mt.meal_time_id = s.meal_time_id
"""


class AppliedPlanQueries:
    """Database queries for applied meal plans."""

    @staticmethod
    def create(conn: sqlite3.Connection, plan: AppliedMealPlan) -> int:
        """Insert an applied plan and return its id."""
        cursor = conn.execute(
            """
            INSERT INTO applied_meal_plans
                (user_id, meal_plan_id, selected_days, weeks_count, start_date,
                 is_active, source, assigned_by)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                plan.user_id,
                plan.meal_plan_id,
                json.dumps([d.value for d in plan.selected_days]),
                plan.weeks_count,
                plan.start_date.isoformat(),
                plan.is_active,
                plan.source.value,
                plan.assigned_by,
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def get(conn: sqlite3.Connection, applied_plan_id: int) -> Optional[AppliedMealPlan]:
        row = conn.execute(
            _APPLIED_SELECT + " WHERE a.applied_plan_id = ?", (applied_plan_id,)
        ).fetchone()
        return _applied_plan_from_row(row) if row else None

    @staticmethod
    def list_for_user(
        conn: sqlite3.Connection, user_id: int, active_only: bool = True
    ) -> list[AppliedMealPlan]:
        query = _APPLIED_SELECT + " WHERE a.user_id = ?"
        params: list = [user_id]
        if active_only:
            query += " AND a.is_active = TRUE"
        query += " ORDER BY a.start_date, a.applied_plan_id"
        return [_applied_plan_from_row(r) for r in conn.execute(query, params).fetchall()]

    @staticmethod
    def deactivate(
        conn: sqlite3.Connection, applied_plan_id: int, on_date: date
    ) -> None:
        conn.execute(
            """
            UPDATE applied_meal_plans
            SET is_active = FALSE, deactivated_on = ?
            WHERE applied_plan_id = ?
            """,
            (on_date.isoformat(), applied_plan_id),
        )


class ScheduledMealQueries:
    """Database queries for scheduled meals."""

    @staticmethod
    def insert_many(
        conn: sqlite3.Connection,
        applied_plan_id: int,
        user_id: int,
        meals: list[ScheduledMeal],
    ) -> int:
        """Insert a batch of expanded meals. Returns rows written."""
        cursor = conn.executemany(
            """
            INSERT INTO scheduled_meals
                (applied_plan_id, user_id, daily_plan_id, meal_time_id,
                 scheduled_date, week_number, sequence, is_active, is_completed)
            VALUES (?, ?, ?, ?, ?, ?, ?, TRUE, FALSE)
            """,
            [
                (
                    applied_plan_id,
                    user_id,
                    m.daily_plan_id,
                    m.meal_time_id,
                    m.scheduled_date.isoformat(),
                    m.week_number,
                    m.sequence,
                )
                for m in meals
            ],
        )
        return cursor.rowcount

    @staticmethod
    def get(
        conn: sqlite3.Connection, scheduled_meal_id: int
    ) -> Optional[ScheduledMeal]:
        row = conn.execute(
            _SCHEDULED_SELECT + " WHERE s.scheduled_meal_id = ?",
            (scheduled_meal_id,),
        ).fetchone()
        return _scheduled_meal_from_row(row) if row else None

    @staticmethod
    def list_for_user(
        conn: sqlite3.Connection,
        user_id: int,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        active_only: bool = True,
        applied_plan_id: Optional[int] = None,
    ) -> list[ScheduledMeal]:
        """Scheduled meals ordered by date, then meal-time order."""
        query = _SCHEDULED_SELECT + " WHERE s.user_id = ?"
        params: list = [user_id]

        if date_from:
            query += " AND s.scheduled_date >= ?"
            params.append(date_from.isoformat())
        if date_to:
            query += " AND s.scheduled_date <= ?"
            params.append(date_to.isoformat())
        if active_only:
            query += " AND s.is_active = TRUE"
        if applied_plan_id is not None:
            query += " AND s.applied_plan_id = ?"
            params.append(applied_plan_id)

        query += " ORDER BY s.scheduled_date, s.sequence, s.scheduled_meal_id"
        return [_scheduled_meal_from_row(r) for r in conn.execute(query, params).fetchall()]

    @staticmethod
    def deactivate_after(
        conn: sqlite3.Connection, applied_plan_id: int, after: date
    ) -> int:
        """Mark meals dated strictly after `after` inactive. Returns count."""
        cursor = conn.execute(
            """
            UPDATE scheduled_meals SET is_active = FALSE
            WHERE applied_plan_id = ? AND scheduled_date > ? AND is_active = TRUE
            """,
            (applied_plan_id, after.isoformat()),
        )
        return cursor.rowcount

    @staticmethod
    def set_completion(
        conn: sqlite3.Connection,
        scheduled_meal_id: int,
        is_completed: bool,
        completed_at: Optional[datetime],
    ) -> None:
        conn.execute(
            """
            UPDATE scheduled_meals SET is_completed = ?, completed_at = ?
            WHERE scheduled_meal_id = ?
            """,
            (
                is_completed,
                completed_at.isoformat(sep=" ", timespec="seconds") if completed_at else None,
                scheduled_meal_id,
            ),
        )
