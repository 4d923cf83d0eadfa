"""Record what was actually eaten against scheduled meals.

Every mutation runs in one transaction:

1. validate the request (amount, unit, ownership, referential integrity)
2. write the consumption record
3. recompute the scheduled meal's completion from the template and all of
   its consumption records, and store the result

No running totals are kept; step 3 always starts from leaf quantities.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from datetime import datetime
from typing import Any, Callable, Optional

from mealtrack.config import Settings, get_settings
from mealtrack.db import DatabaseConnection, get_db
from mealtrack.db.connection import read_with_retry
from mealtrack.errors import NotFoundError, ReferentialMismatchError, ValidationError
from mealtrack.nutrition.aggregator import ConsumedItemSummary, MealSummary
from mealtrack.nutrition.loader import summarize_one
from mealtrack.scheduling.models import ScheduledMeal
from mealtrack.scheduling.queries import ScheduledMealQueries
from mealtrack.session import SessionContext
from mealtrack.templates.models import PlannedFoodItem, Unit
from mealtrack.templates.queries import TemplateQueries
from mealtrack.tracking.models import ConsumedFood, DeleteResult
from mealtrack.tracking.queries import ConsumedFoodQueries, ReceiptQueries

logger = logging.getLogger(__name__)


def validate_amount(amount: Any) -> float:
    """Return amount as float, or raise ValidationError if it is not >= 0."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError(f"Amount must be a number, got {amount!r}")
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        raise ValidationError(f"Amount must be a non-negative number, got {amount}")
    return float(amount)


def coerce_unit(unit: Any) -> Unit:
    """Accept a Unit or its string value."""
    if isinstance(unit, Unit):
        return unit
    try:
        return Unit(str(unit).strip().lower())
    except ValueError:
        valid = ", ".join(u.value for u in Unit)
        raise ValidationError(f"Unknown unit '{unit}'. Valid units: {valid}")


class ConsumptionTracker:
    """Create, update and delete consumption records for scheduled meals."""

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        settings: Optional[Settings] = None,
        now_fn: Callable[[], datetime] = datetime.now,
    ):
        self.db = db or get_db()
        self.settings = settings or get_settings()
        self.now_fn = now_fn

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def log_consumption(
        self,
        session: SessionContext,
        scheduled_meal_id: int,
        planned_food_item_id: int,
        amount: float,
        unit: Any,
        notes: Optional[str] = None,
    ) -> ConsumedFood:
        """Log (or re-log) consumption of one planned food item.

        A second log for the same (scheduled meal, planned item) pair
        updates the existing record.

        Args:
            session: Caller session
            scheduled_meal_id: Target scheduled meal
            planned_food_item_id: Item of the meal's meal time
            amount: Consumed amount, >= 0
            unit: Unit or unit string
            notes: Optional free text

        Returns:
            The stored record

        Raises:
            AuthExpiredError: If the session has expired
            ValidationError: On a bad amount or unit
            NotFoundError: If the scheduled meal does not exist for this user
            ReferentialMismatchError: If the item is not part of the meal
        """
        session.require_valid()
        amount = validate_amount(amount)
        unit = coerce_unit(unit)

        with self.db.get_connection() as conn:
            meal = self._load_meal(conn, session, scheduled_meal_id)
            self._require_active(meal)
            planned = self._planned_item(conn, meal, planned_food_item_id)
            self._check_unit(planned, unit)

            consumed_food_id = ConsumedFoodQueries.upsert(
                conn, scheduled_meal_id, planned_food_item_id, amount, unit, notes
            )
            self._refresh_completion(conn, meal)
            record = ConsumedFoodQueries.get(conn, consumed_food_id)

        logger.debug(
            "Logged %s %s of item %d on scheduled meal %d",
            amount, unit.value, planned_food_item_id, scheduled_meal_id,
        )
        if record is None:
            raise NotFoundError("consumed_food", planned_food_item_id)
        return record

    def update_consumption(
        self,
        session: SessionContext,
        consumed_food_id: int,
        amount: Optional[float] = None,
        unit: Any = None,
        notes: Optional[str] = None,
    ) -> ConsumedFood:
        """Change amount, unit or notes of an existing record.

        Omitted fields keep their stored value.

        Raises:
            NotFoundError: If the record does not exist for this user
            ValidationError: If the meal belongs to a deactivated plan
        """
        session.require_valid()
        new_amount = validate_amount(amount) if amount is not None else None
        new_unit = coerce_unit(unit) if unit is not None else None

        with self.db.get_connection() as conn:
            record = ConsumedFoodQueries.get(conn, consumed_food_id)
            if record is None:
                raise NotFoundError("consumed_food", consumed_food_id)
            meal = self._load_meal(conn, session, record.scheduled_meal_id)
            self._require_active(meal)
            planned = self._planned_item(conn, meal, record.planned_food_item_id)

            final_unit = new_unit or record.consumed_unit
            self._check_unit(planned, final_unit)
            ConsumedFoodQueries.update(
                conn,
                consumed_food_id,
                new_amount if new_amount is not None else record.consumed_amount,
                final_unit,
                notes if notes is not None else record.notes,
            )
            self._refresh_completion(conn, meal)
            updated = ConsumedFoodQueries.get(conn, consumed_food_id)

        if updated is None:
            raise NotFoundError("consumed_food", consumed_food_id)
        return updated

    def delete_consumption(
        self,
        session: SessionContext,
        consumed_food_id: int,
        idempotency_key: Optional[str] = None,
    ) -> DeleteResult:
        """Remove a consumption record and recompute completion.

        A record that is already gone is reported, not raised. With an
        idempotency key, a repeated call returns the first call's outcome
        without touching state.

        Raises:
            ValidationError: If the key was already used for another record
        """
        session.require_valid()

        target = f"consumed_food:{consumed_food_id}"
        with self.db.get_connection() as conn:
            replayed = self._replay(conn, idempotency_key, target)
            if replayed is not None:
                return replayed

            record = ConsumedFoodQueries.get(conn, consumed_food_id)
            result = self._delete_record(
                conn, session, record, "consumed_food", consumed_food_id
            )
            if idempotency_key:
                ReceiptQueries.record(conn, idempotency_key, target, result)

        return result

    def quick_complete(
        self,
        session: SessionContext,
        scheduled_meal_id: int,
        planned_food_item_id: int,
    ) -> ConsumedFood:
        """Log exactly the planned amount and unit for an item."""
        session.require_valid()
        with self.db.get_connection() as conn:
            meal = self._load_meal(conn, session, scheduled_meal_id)
            planned = self._planned_item(conn, meal, planned_food_item_id)

        return self.log_consumption(
            session,
            scheduled_meal_id,
            planned_food_item_id,
            planned.amount,
            planned.unit,
        )

    def quick_uncomplete(
        self,
        session: SessionContext,
        scheduled_meal_id: int,
        planned_food_item_id: int,
        idempotency_key: Optional[str] = None,
    ) -> DeleteResult:
        """Delete whatever was logged for an item of a scheduled meal."""
        session.require_valid()

        target = f"scheduled_meal:{scheduled_meal_id}/planned_food_item:{planned_food_item_id}"
        with self.db.get_connection() as conn:
            replayed = self._replay(conn, idempotency_key, target)
            if replayed is not None:
                return replayed

            meal = self._load_meal(conn, session, scheduled_meal_id)
            self._planned_item(conn, meal, planned_food_item_id)
            record = ConsumedFoodQueries.get_for_pair(
                conn, scheduled_meal_id, planned_food_item_id
            )
            result = self._delete_record(
                conn, session, record, "planned_food_item", planned_food_item_id
            )
            if idempotency_key:
                ReceiptQueries.record(conn, idempotency_key, target, result)

        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @read_with_retry
    def get_consumption(
        self, session: SessionContext, consumed_food_id: int
    ) -> ConsumedItemSummary:
        """A record joined with its planned item, nutrition and completion."""
        session.require_valid()
        with self.db.get_connection() as conn:
            record = ConsumedFoodQueries.get(conn, consumed_food_id)
            if record is None:
                raise NotFoundError("consumed_food", consumed_food_id)
            meal = self._load_meal(conn, session, record.scheduled_meal_id)
            summary = summarize_one(conn, meal)

        for item in summary.items:
            if item.consumed.consumed_food_id == consumed_food_id:
                return item
        raise NotFoundError("consumed_food", consumed_food_id)

    @read_with_retry
    def get_meal_summary(
        self, session: SessionContext, scheduled_meal_id: int
    ) -> MealSummary:
        session.require_valid()
        with self.db.get_connection() as conn:
            meal = self._load_meal(conn, session, scheduled_meal_id)
            return summarize_one(conn, meal)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_meal(
        self, conn: sqlite3.Connection, session: SessionContext, scheduled_meal_id: int
    ) -> ScheduledMeal:
        meal = ScheduledMealQueries.get(conn, scheduled_meal_id)
        if meal is None or meal.user_id != session.user_id:
            raise NotFoundError("scheduled_meal", scheduled_meal_id)
        return meal

    def _require_active(self, meal: ScheduledMeal) -> None:
        if not meal.is_active:
            raise ValidationError(
                f"Scheduled meal {meal.scheduled_meal_id} belongs to a deactivated plan"
            )

    def _planned_item(
        self, conn: sqlite3.Connection, meal: ScheduledMeal, planned_food_item_id: int
    ) -> PlannedFoodItem:
        meal_time = TemplateQueries.get_meal_time(conn, meal.meal_time_id)
        planned = meal_time.find_item(planned_food_item_id) if meal_time else None
        if planned is None:
            raise ReferentialMismatchError(meal.scheduled_meal_id, planned_food_item_id)
        return planned

    def _check_unit(self, planned: PlannedFoodItem, unit: Unit) -> None:
        if unit == planned.unit:
            return
        message = (
            f"Consumed unit '{unit.value}' differs from planned unit "
            f"'{planned.unit.value}' for item {planned.planned_food_item_id}"
        )
        if self.settings.tracking.strict_units:
            raise ValidationError(message)
        logger.warning("%s; amounts are compared without conversion", message)

    def _refresh_completion(self, conn: sqlite3.Connection, meal: ScheduledMeal) -> None:
        """Store the meal's completion flag as derived from current records."""
        summary = summarize_one(conn, meal)
        if summary.is_completed and not meal.is_completed:
            ScheduledMealQueries.set_completion(
                conn, meal.scheduled_meal_id, True, self.now_fn()
            )
            logger.info("Scheduled meal %d completed", meal.scheduled_meal_id)
        elif not summary.is_completed and meal.is_completed:
            ScheduledMealQueries.set_completion(conn, meal.scheduled_meal_id, False, None)
            logger.info("Scheduled meal %d no longer complete", meal.scheduled_meal_id)

    def _replay(
        self, conn: sqlite3.Connection, idempotency_key: Optional[str], target: str
    ) -> Optional[DeleteResult]:
        if not idempotency_key:
            return None
        receipt = ReceiptQueries.get(conn, idempotency_key, target)
        if receipt is not None:
            logger.info("Delete with key %s already processed", idempotency_key)
        return receipt

    def _delete_record(
        self,
        conn: sqlite3.Connection,
        session: SessionContext,
        record: Optional[ConsumedFood],
        resource: str,
        resource_id: int,
    ) -> DeleteResult:
        if record is None:
            logger.info("%s %d has nothing to delete", resource, resource_id)
            return DeleteResult(
                resource=resource,
                resource_id=resource_id,
                deleted=False,
                already_absent=True,
            )
        meal = self._load_meal(conn, session, record.scheduled_meal_id)
        ConsumedFoodQueries.delete(conn, record.consumed_food_id)
        self._refresh_completion(conn, meal)
        logger.debug("Deleted consumed food %d", record.consumed_food_id)
        return DeleteResult(
            resource="consumed_food", resource_id=record.consumed_food_id, deleted=True
        )
