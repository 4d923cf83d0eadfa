"""Manual food log: entries outside any scheduled meal."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from mealtrack.config import Settings, get_settings
from mealtrack.db import DatabaseConnection, get_db
from mealtrack.db.connection import read_with_retry
from mealtrack.errors import NotFoundError, ValidationError
from mealtrack.nutrition.models import Nutrition
from mealtrack.session import SessionContext
from mealtrack.templates.models import AdHocFood, Unit
from mealtrack.templates.queries import FoodQueries
from mealtrack.tracking.models import DeleteResult, FoodEntry, MealType
from mealtrack.tracking.queries import FoodEntryQueries, ReceiptQueries
from mealtrack.tracking.tracker import coerce_unit, validate_amount

logger = logging.getLogger(__name__)


def coerce_meal_type(value: Any) -> MealType:
    if isinstance(value, MealType):
        return value
    try:
        return MealType(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in MealType)
        raise ValidationError(f"Unknown meal type '{value}'. Valid types: {valid}")


class FoodLog:
    """Add, edit, delete and list manual food entries."""

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db or get_db()
        self.settings = settings or get_settings()

    def add_entry(
        self,
        session: SessionContext,
        food_id: int,
        amount: float,
        unit: Any,
        meal_type: Any,
        consumed_on: date,
        notes: Optional[str] = None,
    ) -> FoodEntry:
        """Log a stored catalog, custom or ad-hoc food."""
        session.require_valid()
        amount = validate_amount(amount)
        unit = coerce_unit(unit)
        meal_type = coerce_meal_type(meal_type)

        with self.db.get_connection() as conn:
            food = FoodQueries.get_food(conn, food_id)
            if food is None:
                raise NotFoundError("food", food_id)
            entry = FoodEntry(
                entry_id=None,
                user_id=session.user_id,
                food=food,
                amount=amount,
                unit=unit,
                meal_type=meal_type,
                consumed_on=consumed_on,
                notes=notes,
            )
            entry_id = FoodEntryQueries.add(conn, entry)
            stored = FoodEntryQueries.get(conn, entry_id)

        logger.debug("Logged entry %d (%s) for user %d", entry_id, food.name, session.user_id)
        if stored is None:
            raise NotFoundError("food_entry", entry_id)
        return stored

    def quick_add(
        self,
        session: SessionContext,
        name: str,
        nutrition: Nutrition,
        meal_type: Any,
        consumed_on: date,
        notes: Optional[str] = None,
    ) -> FoodEntry:
        """Log an ad-hoc food whose values describe the whole portion."""
        if not name or not name.strip():
            raise ValidationError("Quick add needs a name")
        for macro, value in nutrition.to_dict().items():
            if value < 0:
                raise ValidationError(f"{macro} must be non-negative, got {value}")
        session.require_valid()

        with self.db.get_connection() as conn:
            food_id = FoodQueries.add_food(
                conn, AdHocFood(food_id=None, name=name.strip(), nutrition=nutrition)
            )
        return self.add_entry(
            session, food_id, 1, Unit.PIECE, meal_type, consumed_on, notes=notes
        )

    def update_entry(
        self,
        session: SessionContext,
        entry_id: int,
        amount: Optional[float] = None,
        unit: Any = None,
        meal_type: Any = None,
        consumed_on: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> FoodEntry:
        session.require_valid()
        with self.db.get_connection() as conn:
            entry = self._load_entry(conn, session, entry_id)
            if amount is not None:
                entry.amount = validate_amount(amount)
            if unit is not None:
                entry.unit = coerce_unit(unit)
            if meal_type is not None:
                entry.meal_type = coerce_meal_type(meal_type)
            if consumed_on is not None:
                entry.consumed_on = consumed_on
            if notes is not None:
                entry.notes = notes
            FoodEntryQueries.update(conn, entry)
            return self._load_entry(conn, session, entry_id)

    def delete_entry(
        self,
        session: SessionContext,
        entry_id: int,
        idempotency_key: Optional[str] = None,
    ) -> DeleteResult:
        """Delete an entry. A missing entry is reported, not raised."""
        session.require_valid()
        target = f"food_entry:{entry_id}"
        with self.db.get_connection() as conn:
            if idempotency_key:
                receipt = ReceiptQueries.get(conn, idempotency_key, target)
                if receipt is not None:
                    return receipt

            entry = FoodEntryQueries.get(conn, entry_id)
            if entry is None:
                logger.info("Food entry %d already absent", entry_id)
                result = DeleteResult("food_entry", entry_id, deleted=False, already_absent=True)
            else:
                if entry.user_id != session.user_id:
                    raise NotFoundError("food_entry", entry_id)
                FoodEntryQueries.delete(conn, entry_id)
                result = DeleteResult("food_entry", entry_id, deleted=True)

            if idempotency_key:
                ReceiptQueries.record(conn, idempotency_key, target, result)
        return result

    @read_with_retry
    def list_entries(
        self, session: SessionContext, date_from: date, date_to: date
    ) -> list[FoodEntry]:
        session.require_valid()
        if date_to < date_from:
            raise ValidationError("date_to must not be before date_from")
        with self.db.get_connection() as conn:
            return FoodEntryQueries.list_for_range(conn, session.user_id, date_from, date_to)

    def _load_entry(self, conn, session: SessionContext, entry_id: int) -> FoodEntry:
        entry = FoodEntryQueries.get(conn, entry_id)
        if entry is None or entry.user_id != session.user_id:
            raise NotFoundError("food_entry", entry_id)
        return entry
