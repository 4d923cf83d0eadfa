"""Database queries for consumed foods, food entries and delete receipts."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Iterable, Optional

from mealtrack.errors import ValidationError
from mealtrack.templates.models import Unit
from mealtrack.templates.queries import food_from_row
from mealtrack.tracking.models import ConsumedFood, DeleteResult, FoodEntry, MealType


def _ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _consumed_from_row(row: sqlite3.Row) -> ConsumedFood:
    return ConsumedFood(
        consumed_food_id=row["consumed_food_id"],
        scheduled_meal_id=row["scheduled_meal_id"],
        planned_food_item_id=row["planned_food_item_id"],
        consumed_amount=row["consumed_amount"],
        consumed_unit=Unit(row["consumed_unit"]),
        notes=row["notes"],
        created_at=_ts(row["created_at"]),
        updated_at=_ts(row["updated_at"]),
    )


class ConsumedFoodQueries:
    """Database queries for consumption records."""

    @staticmethod
    def get(conn: sqlite3.Connection, consumed_food_id: int) -> Optional[ConsumedFood]:
        row = conn.execute(
            "SELECT * FROM consumed_foods WHERE consumed_food_id = ?",
            (consumed_food_id,),
        ).fetchone()
        return _consumed_from_row(row) if row else None

    @staticmethod
    def get_for_pair(
        conn: sqlite3.Connection, scheduled_meal_id: int, planned_food_item_id: int
    ) -> Optional[ConsumedFood]:
        row = conn.execute(
            """
            SELECT * FROM consumed_foods
            WHERE scheduled_meal_id = ? AND planned_food_item_id = ?
            """,
            (scheduled_meal_id, planned_food_item_id),
        ).fetchone()
        return _consumed_from_row(row) if row else None

    @staticmethod
    def list_for_meals(
        conn: sqlite3.Connection, scheduled_meal_ids: Iterable[int]
    ) -> dict[int, list[ConsumedFood]]:
        """Consumption records grouped by scheduled meal id."""
        ids = list(scheduled_meal_ids)
        grouped: dict[int, list[ConsumedFood]] = {i: [] for i in ids}
        if not ids:
            return grouped
        placeholders = ",".join("?" for _ in ids)
        rows = conn.execute(
            f"""
            SELECT * FROM consumed_foods
            WHERE scheduled_meal_id IN ({placeholders})
            ORDER BY consumed_food_id
            """,
            ids,
        ).fetchall()
        for row in rows:
            grouped[row["scheduled_meal_id"]].append(_consumed_from_row(row))
        return grouped

    @staticmethod
    def upsert(
        conn: sqlite3.Connection,
        scheduled_meal_id: int,
        planned_food_item_id: int,
        amount: float,
        unit: Unit,
        notes: Optional[str] = None,
    ) -> int:
        """Insert or update the record for a (meal, planned item) pair.

        Returns the consumed_food_id, which is stable across updates. Notes
        are kept when the new call passes none.
        """
        conn.execute(
            """
            INSERT INTO consumed_foods
                (scheduled_meal_id, planned_food_item_id, consumed_amount, consumed_unit, notes)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(scheduled_meal_id, planned_food_item_id) DO UPDATE SET
                consumed_amount = excluded.consumed_amount,
                consumed_unit = excluded.consumed_unit,
                notes = COALESCE(excluded.notes, consumed_foods.notes),
                updated_at = CURRENT_TIMESTAMP
            """,
            (scheduled_meal_id, planned_food_item_id, amount, unit.value, notes),
        )
        row = conn.execute(
            """
            SELECT consumed_food_id FROM consumed_foods
            WHERE scheduled_meal_id = ? AND planned_food_item_id = ?
            """,
            (scheduled_meal_id, planned_food_item_id),
        ).fetchone()
        return row[0]

    @staticmethod
    def update(
        conn: sqlite3.Connection,
        consumed_food_id: int,
        amount: float,
        unit: Unit,
        notes: Optional[str],
    ) -> None:
        conn.execute(
            """
            UPDATE consumed_foods
            SET consumed_amount = ?, consumed_unit = ?, notes = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE consumed_food_id = ?
            """,
            (amount, unit.value, notes, consumed_food_id),
        )

    @staticmethod
    def delete(conn: sqlite3.Connection, consumed_food_id: int) -> bool:
        """Delete a record. Returns False if it did not exist."""
        cursor = conn.execute(
            "DELETE FROM consumed_foods WHERE consumed_food_id = ?",
            (consumed_food_id,),
        )
        return cursor.rowcount > 0


def _entry_from_row(row: sqlite3.Row) -> FoodEntry:
    return FoodEntry(
        entry_id=row["entry_id"],
        user_id=row["user_id"],
        food=food_from_row(row),
        amount=row["amount"],
        unit=Unit(row["unit"]),
        meal_type=MealType(row["meal_type"]),
        consumed_on=date.fromisoformat(row["consumed_on"]),
        notes=row["notes"],
        created_at=_ts(row["entry_created_at"]),
    )


_ENTRY_SELECT = """
    SELECT e.entry_id, e.user_id, e.amount, e.unit, e.meal_type, e.consumed_on,
           e.notes, e.created_at AS entry_created_at, f.*
    FROM food_entries e
    JOIN foods f ON f.food_id = e.food_id
"""


class FoodEntryQueries:
    """Database queries for the manual food log."""

    @staticmethod
    def add(conn: sqlite3.Connection, entry: FoodEntry) -> int:
        if entry.food.food_id is None:
            raise ValueError(f"Food '{entry.food.name}' must be stored before it is logged")
        cursor = conn.execute(
            """
            INSERT INTO food_entries
                (user_id, food_id, amount, unit, meal_type, consumed_on, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.user_id,
                entry.food.food_id,
                entry.amount,
                entry.unit.value,
                entry.meal_type.value,
                entry.consumed_on.isoformat(),
                entry.notes,
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def get(conn: sqlite3.Connection, entry_id: int) -> Optional[FoodEntry]:
        row = conn.execute(
            _ENTRY_SELECT + " WHERE e.entry_id = ?", (entry_id,)
        ).fetchone()
        return _entry_from_row(row) if row else None

    @staticmethod
    def update(conn: sqlite3.Connection, entry: FoodEntry) -> None:
        conn.execute(
            """
            UPDATE food_entries
            SET amount = ?, unit = ?, meal_type = ?, consumed_on = ?, notes = ?
            WHERE entry_id = ?
            """,
            (
                entry.amount,
                entry.unit.value,
                entry.meal_type.value,
                entry.consumed_on.isoformat(),
                entry.notes,
                entry.entry_id,
            ),
        )

    @staticmethod
    def delete(conn: sqlite3.Connection, entry_id: int) -> bool:
        cursor = conn.execute("DELETE FROM food_entries WHERE entry_id = ?", (entry_id,))
        return cursor.rowcount > 0

    @staticmethod
    def list_for_range(
        conn: sqlite3.Connection, user_id: int, date_from: date, date_to: date
    ) -> list[FoodEntry]:
        rows = conn.execute(
            _ENTRY_SELECT
            + """
            WHERE e.user_id = ? AND e.consumed_on >= ? AND e.consumed_on <= ?
            ORDER BY e.consumed_on, e.entry_id
            """,
            (user_id, date_from.isoformat(), date_to.isoformat()),
        ).fetchall()
        return [_entry_from_row(r) for r in rows]


class ReceiptQueries:
    """Stored outcomes of idempotent deletes.

    A key is bound to the target it was first used on. Replaying it
    against a different target is a client error, not a replay.
    """

    @staticmethod
    def get(
        conn: sqlite3.Connection, idempotency_key: str, target: str
    ) -> Optional[DeleteResult]:
        row = conn.execute(
            "SELECT * FROM delete_receipts WHERE idempotency_key = ?",
            (idempotency_key,),
        ).fetchone()
        if row is None:
            return None
        if row["target"] != target:
            raise ValidationError(
                f"Idempotency key '{idempotency_key}' was already used for "
                f"{row['target']}, not {target}"
            )
        return DeleteResult(
            resource=row["resource"],
            resource_id=row["resource_id"],
            deleted=row["outcome"] == "deleted",
            already_absent=row["outcome"] == "already_absent",
            replayed=True,
        )

    @staticmethod
    def record(
        conn: sqlite3.Connection, idempotency_key: str, target: str, result: DeleteResult
    ) -> None:
        conn.execute(
            """
            INSERT INTO delete_receipts
                (idempotency_key, target, resource, resource_id, outcome)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                idempotency_key,
                target,
                result.resource,
                result.resource_id,
                "deleted" if result.deleted else "already_absent",
            ),
        )
