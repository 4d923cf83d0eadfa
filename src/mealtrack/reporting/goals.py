"""Nutrition goals: one active goal per user."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from mealtrack.nutrition.models import MACROS


@dataclass
class CalorieGoal:
    """Daily nutrition targets. Macro targets are optional."""

    goal_id: Optional[int]
    user_id: int
    daily_calories: Optional[float] = None
    daily_protein: Optional[float] = None
    daily_carbs: Optional[float] = None
    daily_fat: Optional[float] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for macro in MACROS:
            value = self.target(macro)
            if value is not None and value <= 0:
                raise ValueError(f"daily_{macro} must be positive, got {value}")

    def target(self, macro: str) -> Optional[float]:
        if macro not in MACROS:
            raise KeyError(f"Unknown macro: {macro}")
        return getattr(self, f"daily_{macro}")

    def targets(self) -> dict[str, float]:
        """Macros that have a target, in MACROS order."""
        result = {}
        for macro in MACROS:
            value = self.target(macro)
            if value is not None:
                result[macro] = value
        return result


def _goal_from_row(row: sqlite3.Row) -> CalorieGoal:
    return CalorieGoal(
        goal_id=row["goal_id"],
        user_id=row["user_id"],
        daily_calories=row["daily_calories"],
        daily_protein=row["daily_protein"],
        daily_carbs=row["daily_carbs"],
        daily_fat=row["daily_fat"],
        is_active=bool(row["is_active"]),
        created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
    )


class GoalQueries:
    """Database queries for the goal store."""

    @staticmethod
    def set_goal(conn: sqlite3.Connection, goal: CalorieGoal) -> int:
        """Store a goal as the user's active goal, retiring the previous one."""
        conn.execute(
            """
            UPDATE calorie_goals SET is_active = FALSE, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = ? AND is_active = TRUE
            """,
            (goal.user_id,),
        )
        cursor = conn.execute(
            """
            INSERT INTO calorie_goals
                (user_id, daily_calories, daily_protein, daily_carbs, daily_fat, is_active)
            VALUES (?, ?, ?, ?, ?, TRUE)
            """,
            (
                goal.user_id,
                goal.daily_calories,
                goal.daily_protein,
                goal.daily_carbs,
                goal.daily_fat,
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def get_active_goal(conn: sqlite3.Connection, user_id: int) -> Optional[CalorieGoal]:
        row = conn.execute(
            """
            SELECT * FROM calorie_goals
            WHERE user_id = ? AND is_active = TRUE
            ORDER BY goal_id DESC LIMIT 1
            """,
            (user_id,),
        ).fetchone()
        return _goal_from_row(row) if row else None

    @staticmethod
    def get_goal_history(conn: sqlite3.Connection, user_id: int) -> list[CalorieGoal]:
        rows = conn.execute(
            "SELECT * FROM calorie_goals WHERE user_id = ? ORDER BY goal_id DESC",
            (user_id,),
        ).fetchall()
        return [_goal_from_row(r) for r in rows]
