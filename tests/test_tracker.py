"""Tests for the consumption tracker."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import pytest

from mealtrack.errors import (
    AuthExpiredError,
    NotFoundError,
    ReferentialMismatchError,
    ValidationError,
)
from mealtrack.scheduling.models import RecurrenceRequest, Weekday
from mealtrack.scheduling.queries import ScheduledMealQueries
from mealtrack.session import SessionContext, local_session
from mealtrack.tracking.tracker import ConsumptionTracker

from conftest import TODAY


@pytest.fixture
def applied(schedule_service, session, sample_template):
    """Template applied Mon/Wed for one week starting TODAY."""
    request = RecurrenceRequest(
        meal_plan_id=sample_template.meal_plan_id,
        selected_days=frozenset({Weekday.MONDAY, Weekday.WEDNESDAY}),
        weeks_count=1,
        start_date=TODAY,
    )
    return schedule_service.apply_meal_plan(session, request)


@pytest.fixture
def lunch(applied, sample_template):
    """Day-1 lunch (chicken 200 g, rice 150 g) and its planned items."""
    meal = applied.scheduled_meals[1]
    meal_time = sample_template.find_meal_time(meal.meal_time_id)
    return meal, meal_time.food_items


@pytest.fixture
def breakfast(applied, sample_template):
    """Day-1 breakfast (oats 100 g) and its planned items."""
    meal = applied.scheduled_meals[0]
    meal_time = sample_template.find_meal_time(meal.meal_time_id)
    return meal, meal_time.food_items


def stored_meal(temp_db, meal_id):
    with temp_db.get_connection() as conn:
        return ScheduledMealQueries.get(conn, meal_id)


class TestLogConsumption:
    """Tests for logging consumption."""

    def test_log_creates_record(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 100, "gram",
            notes="half portion",
        )
        assert record.consumed_food_id is not None
        assert record.consumed_amount == 100
        assert record.notes == "half portion"

        summary = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert summary.consumed_foods_count == 1
        assert summary.fully_consumed_count == 0
        assert summary.consumed_nutrition.calories == pytest.approx(165)

    def test_second_log_updates_same_record(self, tracker, session, lunch):
        """Logging an item twice keeps one record per (meal, item) pair."""
        meal, items = lunch
        item_id = items[0].planned_food_item_id
        first = tracker.log_consumption(session, meal.scheduled_meal_id, item_id, 50, "gram")
        second = tracker.log_consumption(session, meal.scheduled_meal_id, item_id, 120, "gram")

        assert second.consumed_food_id == first.consumed_food_id
        assert second.consumed_amount == 120
        summary = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert summary.consumed_foods_count == 1

    def test_item_from_other_meal_time(self, tracker, session, lunch, breakfast):
        meal, _ = lunch
        _, breakfast_items = breakfast
        with pytest.raises(ReferentialMismatchError):
            tracker.log_consumption(
                session, meal.scheduled_meal_id, breakfast_items[0].planned_food_item_id,
                100, "gram",
            )
        summary = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert summary.consumed_foods_count == 0

    @pytest.mark.parametrize("amount", [-1, float("nan"), float("inf"), "10", None, True])
    def test_bad_amount(self, tracker, session, lunch, amount):
        meal, items = lunch
        with pytest.raises(ValidationError):
            tracker.log_consumption(
                session, meal.scheduled_meal_id, items[0].planned_food_item_id, amount, "gram"
            )

    def test_zero_amount_allowed(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 0, "gram"
        )
        assert record.consumed_amount == 0

    def test_unknown_unit(self, tracker, session, lunch):
        meal, items = lunch
        with pytest.raises(ValidationError, match="Unknown unit"):
            tracker.log_consumption(
                session, meal.scheduled_meal_id, items[0].planned_food_item_id, 10, "ounce"
            )

    def test_unit_mismatch_warns(self, tracker, session, lunch, caplog):
        meal, items = lunch
        with caplog.at_level(logging.WARNING, logger="mealtrack.tracking.tracker"):
            record = tracker.log_consumption(
                session, meal.scheduled_meal_id, items[0].planned_food_item_id, 1, "cup"
            )
        assert record.consumed_unit.value == "cup"
        assert "differs from planned unit" in caplog.text

    def test_unit_mismatch_strict(self, temp_db, settings, session, lunch):
        settings.tracking.strict_units = True
        tracker = ConsumptionTracker(temp_db, settings)
        meal, items = lunch
        with pytest.raises(ValidationError, match="differs from planned unit"):
            tracker.log_consumption(
                session, meal.scheduled_meal_id, items[0].planned_food_item_id, 1, "cup"
            )

    def test_unknown_meal(self, tracker, session):
        with pytest.raises(NotFoundError):
            tracker.log_consumption(session, 9999, 1, 10, "gram")

    def test_other_users_meal(self, tracker, lunch):
        meal, items = lunch
        with pytest.raises(NotFoundError):
            tracker.log_consumption(
                local_session(2), meal.scheduled_meal_id, items[0].planned_food_item_id,
                10, "gram",
            )

    def test_expired_session(self, tracker, lunch):
        meal, items = lunch
        expired = SessionContext(
            user_id=1, token="t", expires_at=datetime.now() - timedelta(minutes=1)
        )
        with pytest.raises(AuthExpiredError):
            tracker.log_consumption(
                expired, meal.scheduled_meal_id, items[0].planned_food_item_id, 10, "gram"
            )


class TestCompletion:
    """Tests for the stored completion state."""

    def test_logging_all_items_completes_meal(self, temp_db, session, lunch, settings):
        fixed = datetime(2030, 1, 7, 13, 0)
        tracker = ConsumptionTracker(temp_db, settings, now_fn=lambda: fixed)
        meal, items = lunch
        for item in items:
            tracker.log_consumption(
                session, meal.scheduled_meal_id, item.planned_food_item_id,
                item.amount, item.unit,
            )

        stored = stored_meal(temp_db, meal.scheduled_meal_id)
        assert stored.is_completed
        assert stored.completed_at == fixed

        summary = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert summary.completion_percentage == 100.0
        assert all(i.completion.is_fully_consumed for i in summary.items)

    def test_reducing_amount_reopens_meal(self, tracker, temp_db, session, breakfast):
        meal, items = breakfast
        record = tracker.quick_complete(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id
        )
        assert stored_meal(temp_db, meal.scheduled_meal_id).is_completed

        tracker.update_consumption(session, record.consumed_food_id, amount=40)
        stored = stored_meal(temp_db, meal.scheduled_meal_id)
        assert not stored.is_completed
        assert stored.completed_at is None

    def test_over_consumption(self, tracker, session, breakfast):
        meal, items = breakfast
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 150, "gram"
        )
        item = tracker.get_consumption(session, record.consumed_food_id)
        assert item.completion.completion_percentage == 150.0
        assert item.completion.is_fully_consumed


class TestUpdateConsumption:
    """Tests for updating records."""

    def test_partial_update_keeps_other_fields(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 100, "gram",
            notes="first",
        )
        updated = tracker.update_consumption(session, record.consumed_food_id, amount=180)
        assert updated.consumed_amount == 180
        assert updated.consumed_unit.value == "gram"
        assert updated.notes == "first"

    def test_update_rejects_negative(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 100, "gram"
        )
        with pytest.raises(ValidationError):
            tracker.update_consumption(session, record.consumed_food_id, amount=-5)

    def test_update_missing(self, tracker, session, applied):
        with pytest.raises(NotFoundError):
            tracker.update_consumption(session, 9999, amount=5)


class TestDeleteConsumption:
    """Tests for deleting records."""

    def test_delete_reverts_contribution(self, tracker, session, lunch):
        meal, items = lunch
        first = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 200, "gram"
        )
        tracker.log_consumption(
            session, meal.scheduled_meal_id, items[1].planned_food_item_id, 150, "gram"
        )
        before = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert before.consumed_foods_count == 2
        assert before.is_completed

        result = tracker.delete_consumption(session, first.consumed_food_id)
        assert result.deleted

        after = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert after.consumed_foods_count == 1
        assert not after.is_completed
        assert after.consumed_nutrition.calories == pytest.approx(
            before.consumed_nutrition.calories - 330
        )

    def test_delete_missing_is_informational(self, tracker, session, applied):
        result = tracker.delete_consumption(session, 9999)
        assert not result.deleted
        assert result.already_absent

    def test_delete_twice(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 10, "gram"
        )
        assert tracker.delete_consumption(session, record.consumed_food_id).deleted
        second = tracker.delete_consumption(session, record.consumed_food_id)
        assert second.already_absent

    def test_idempotency_key_replays_first_outcome(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 10, "gram"
        )
        first = tracker.delete_consumption(session, record.consumed_food_id, "key-1")
        retry = tracker.delete_consumption(session, record.consumed_food_id, "key-1")

        assert first.deleted and not first.replayed
        assert retry.deleted
        assert retry.replayed
        assert retry.resource_id == record.consumed_food_id

    def test_idempotency_key_bound_to_record(self, tracker, session, lunch):
        meal, items = lunch
        first = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 10, "gram"
        )
        second = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[1].planned_food_item_id, 20, "gram"
        )
        tracker.delete_consumption(session, first.consumed_food_id, "key-2")

        with pytest.raises(ValidationError, match="already used"):
            tracker.delete_consumption(session, second.consumed_food_id, "key-2")
        remaining = tracker.get_consumption(session, second.consumed_food_id)
        assert remaining.consumed.consumed_amount == 20

    def test_other_users_record(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.log_consumption(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id, 10, "gram"
        )
        with pytest.raises(NotFoundError):
            tracker.delete_consumption(local_session(2), record.consumed_food_id)


class TestQuickActions:
    """Tests for quick complete / uncomplete."""

    def test_quick_complete_logs_planned_amount(self, tracker, session, lunch):
        meal, items = lunch
        record = tracker.quick_complete(
            session, meal.scheduled_meal_id, items[1].planned_food_item_id
        )
        assert record.consumed_amount == items[1].amount
        assert record.consumed_unit == items[1].unit

        item = tracker.get_consumption(session, record.consumed_food_id)
        assert item.completion.completion_percentage == 100.0

    def test_quick_complete_keeps_notes(self, tracker, session, lunch):
        meal, items = lunch
        item = items[0]
        tracker.log_consumption(
            session, meal.scheduled_meal_id, item.planned_food_item_id, 50, item.unit,
            notes="skin on",
        )
        record = tracker.quick_complete(
            session, meal.scheduled_meal_id, item.planned_food_item_id
        )
        assert record.consumed_amount == item.amount
        assert record.notes == "skin on"

    def test_quick_uncomplete_removes_record(self, tracker, session, lunch):
        meal, items = lunch
        item_id = items[0].planned_food_item_id
        tracker.quick_complete(session, meal.scheduled_meal_id, item_id)

        result = tracker.quick_uncomplete(session, meal.scheduled_meal_id, item_id)
        assert result.deleted
        summary = tracker.get_meal_summary(session, meal.scheduled_meal_id)
        assert summary.consumed_foods_count == 0

    def test_quick_uncomplete_nothing_logged(self, tracker, session, lunch):
        meal, items = lunch
        result = tracker.quick_uncomplete(
            session, meal.scheduled_meal_id, items[0].planned_food_item_id
        )
        assert not result.deleted
        assert result.already_absent
        assert result.resource == "planned_food_item"

    def test_quick_complete_foreign_item(self, tracker, session, lunch, breakfast):
        meal, _ = lunch
        _, other = breakfast
        with pytest.raises(ReferentialMismatchError):
            tracker.quick_complete(session, meal.scheduled_meal_id, other[0].planned_food_item_id)
