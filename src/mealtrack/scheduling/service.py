"""Persisting schedule operations: apply, assign, deactivate and query."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from mealtrack.config import Settings, get_settings
from mealtrack.db import DatabaseConnection, get_db
from mealtrack.db.connection import read_with_retry
from mealtrack.errors import NotFoundError, ValidationError
from mealtrack.nutrition.aggregator import MealSummary
from mealtrack.nutrition.loader import summarize_meals, summarize_one
from mealtrack.scheduling.expander import expand
from mealtrack.scheduling.models import (
    AppliedMealPlan,
    AppliedSchedule,
    PlanSource,
    RecurrenceRequest,
)
from mealtrack.scheduling.queries import AppliedPlanQueries, ScheduledMealQueries
from mealtrack.session import SessionContext
from mealtrack.templates.queries import TemplateQueries
from mealtrack.tracking.models import DeleteResult
from mealtrack.tracking.queries import ReceiptQueries

logger = logging.getLogger(__name__)


class ScheduleService:
    """Binds users to templates and serves their scheduled meals."""

    def __init__(
        self,
        db: Optional[DatabaseConnection] = None,
        settings: Optional[Settings] = None,
        today_fn: Callable[[], date] = date.today,
    ):
        self.db = db or get_db()
        self.settings = settings or get_settings()
        self.today_fn = today_fn

    def apply_meal_plan(
        self, session: SessionContext, request: RecurrenceRequest
    ) -> AppliedSchedule:
        """Apply a template to the caller's own calendar."""
        session.require_valid()
        return self._create(
            request,
            user_id=session.user_id,
            source=PlanSource.SELF_APPLIED,
            assigned_by=None,
        )

    def assign_meal_plan(
        self, session: SessionContext, client_id: int, request: RecurrenceRequest
    ) -> AppliedSchedule:
        """Apply a template to a client's calendar on their behalf."""
        session.require_valid()
        if isinstance(client_id, bool) or not isinstance(client_id, int) or client_id <= 0:
            raise ValidationError(f"client_id must be a positive integer, got {client_id!r}")
        return self._create(
            request,
            user_id=client_id,
            source=PlanSource.COACH_ASSIGNED,
            assigned_by=session.user_id,
        )

    def _create(
        self,
        request: RecurrenceRequest,
        user_id: int,
        source: PlanSource,
        assigned_by: Optional[int],
    ) -> AppliedSchedule:
        with self.db.get_connection() as conn:
            template = TemplateQueries.get_meal_plan(conn, request.meal_plan_id)
            if template is None:
                raise NotFoundError("meal_plan", request.meal_plan_id)

            # Validates and expands before anything is written
            meals = expand(
                template,
                request.selected_days,
                request.weeks_count,
                request.start_date,
                today=self.today_fn(),
            )

            applied_plan_id = AppliedPlanQueries.create(
                conn,
                AppliedMealPlan(
                    applied_plan_id=None,
                    user_id=user_id,
                    meal_plan_id=request.meal_plan_id,
                    selected_days=request.ordered_days,
                    weeks_count=request.weeks_count,
                    start_date=request.start_date,
                    source=source,
                    assigned_by=assigned_by,
                ),
            )
            ScheduledMealQueries.insert_many(conn, applied_plan_id, user_id, meals)

            applied = AppliedPlanQueries.get(conn, applied_plan_id)
            stored = ScheduledMealQueries.list_for_user(
                conn, user_id, applied_plan_id=applied_plan_id
            )

        logger.info(
            "Applied template %d to user %d (%s): %d scheduled meals",
            request.meal_plan_id, user_id, source.value, len(stored),
        )
        if applied is None:
            raise NotFoundError("applied_meal_plan", applied_plan_id)
        return AppliedSchedule(applied_plan=applied, scheduled_meals=stored)

    def deactivate_applied_plan(
        self,
        session: SessionContext,
        applied_plan_id: int,
        idempotency_key: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> DeleteResult:
        """Soft-end an applied plan.

        Scheduled meals dated after `on_date` (default today) become
        inactive; earlier meals and their consumption stay as history.
        An unknown or already inactive plan is reported, not raised.

        Returns:
            DeleteResult with deleted=True when this call ended the plan
        """
        session.require_valid()
        on_date = on_date or self.today_fn()
        target = f"applied_meal_plan:{applied_plan_id}"

        with self.db.get_connection() as conn:
            if idempotency_key:
                receipt = ReceiptQueries.get(conn, idempotency_key, target)
                if receipt is not None:
                    return receipt

            plan = AppliedPlanQueries.get(conn, applied_plan_id)
            if plan is not None and session.user_id not in (plan.user_id, plan.assigned_by):
                raise NotFoundError("applied_meal_plan", applied_plan_id)

            if plan is None or not plan.is_active:
                logger.info("Applied plan %d already inactive or absent", applied_plan_id)
                result = DeleteResult(
                    "applied_meal_plan", applied_plan_id, deleted=False, already_absent=True
                )
            else:
                AppliedPlanQueries.deactivate(conn, applied_plan_id, on_date)
                count = ScheduledMealQueries.deactivate_after(conn, applied_plan_id, on_date)
                logger.info(
                    "Deactivated applied plan %d as of %s (%d future meals ended)",
                    applied_plan_id, on_date.isoformat(), count,
                )
                result = DeleteResult("applied_meal_plan", applied_plan_id, deleted=True)

            if idempotency_key:
                ReceiptQueries.record(conn, idempotency_key, target, result)

        return result

    @read_with_retry
    def list_applied_plans(
        self, session: SessionContext, active_only: bool = True
    ) -> list[AppliedMealPlan]:
        session.require_valid()
        with self.db.get_connection() as conn:
            return AppliedPlanQueries.list_for_user(conn, session.user_id, active_only)

    @read_with_retry
    def get_scheduled_meals(
        self,
        session: SessionContext,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        is_completed: Optional[bool] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[MealSummary]:
        """Active scheduled meals with freshly computed completion.

        Args:
            session: Caller session
            date_from: Inclusive lower bound
            date_to: Inclusive upper bound
            is_completed: Keep only completed (True) or open (False) meals
            limit: Page size; None returns everything after `offset`
            offset: Number of matching meals to skip

        Returns:
            Summaries ordered by date, then meal time
        """
        session.require_valid()
        if date_from and date_to and date_to < date_from:
            raise ValidationError("date_to must not be before date_from")
        if offset < 0 or (limit is not None and limit < 0):
            raise ValidationError("limit and offset must be non-negative")

        with self.db.get_connection() as conn:
            meals = ScheduledMealQueries.list_for_user(
                conn, session.user_id, date_from, date_to
            )
            summaries = summarize_meals(conn, meals)

        if is_completed is not None:
            summaries = [s for s in summaries if s.is_completed == is_completed]
        end = None if limit is None else offset + limit
        return summaries[offset:end]

    @read_with_retry
    def get_scheduled_meal_detail(
        self, session: SessionContext, scheduled_meal_id: int
    ) -> MealSummary:
        """Full state of one scheduled meal: planned and consumed foods."""
        session.require_valid()
        with self.db.get_connection() as conn:
            meal = ScheduledMealQueries.get(conn, scheduled_meal_id)
            if meal is None or meal.user_id != session.user_id:
                raise NotFoundError("scheduled_meal", scheduled_meal_id)
            return summarize_one(conn, meal)
