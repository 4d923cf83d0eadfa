"""Tests for applying, assigning and deactivating meal plans."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from mealtrack.errors import NotFoundError, ValidationError
from mealtrack.scheduling.models import PlanSource, RecurrenceRequest, Weekday
from mealtrack.session import local_session

from conftest import TODAY

MON_WED = frozenset({Weekday.MONDAY, Weekday.WEDNESDAY})


def request_for(template, weeks=2, days=MON_WED, start=TODAY) -> RecurrenceRequest:
    return RecurrenceRequest(
        meal_plan_id=template.meal_plan_id,
        selected_days=days,
        weeks_count=weeks,
        start_date=start,
    )


class TestApply:
    """Tests for applying a template."""

    def test_apply_persists_expansion(self, schedule_service, session, sample_template):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))

        plan = result.applied_plan
        assert plan.applied_plan_id is not None
        assert plan.is_active
        assert plan.source == PlanSource.SELF_APPLIED
        assert plan.selected_days == [Weekday.MONDAY, Weekday.WEDNESDAY]
        assert plan.end_date == TODAY + timedelta(days=13)
        assert plan.meal_plan_title == "Lean week"

        # day1 (2 meal times) + day2 (3) + day1 + day2
        assert len(result.scheduled_meals) == 10
        assert all(m.scheduled_meal_id is not None for m in result.scheduled_meals)
        assert [m.daily_plan_day for m in result.scheduled_meals[:3]] == [
            "day1", "day1", "day2",
        ]

    def test_apply_unknown_template(self, schedule_service, session, sample_template):
        request = RecurrenceRequest(999, MON_WED, 1, TODAY)
        with pytest.raises(NotFoundError):
            schedule_service.apply_meal_plan(session, request)

    def test_apply_invalid_writes_nothing(self, schedule_service, session, sample_template):
        with pytest.raises(ValidationError):
            schedule_service.apply_meal_plan(session, request_for(sample_template, weeks=53))
        with pytest.raises(ValidationError):
            schedule_service.apply_meal_plan(
                session, request_for(sample_template, start=TODAY - timedelta(days=1))
            )
        assert schedule_service.list_applied_plans(session) == []

    def test_apply_twice_is_independent(self, schedule_service, session, sample_template):
        first = schedule_service.apply_meal_plan(session, request_for(sample_template, weeks=1))
        second = schedule_service.apply_meal_plan(session, request_for(sample_template, weeks=1))
        assert first.applied_plan.applied_plan_id != second.applied_plan.applied_plan_id
        assert len(schedule_service.get_scheduled_meals(session)) == 10


class TestAssign:
    """Tests for coach assignment."""

    def test_assign_to_client(self, schedule_service, sample_template):
        coach = local_session(7, role="coach")
        result = schedule_service.assign_meal_plan(coach, 3, request_for(sample_template))

        assert result.applied_plan.user_id == 3
        assert result.applied_plan.source == PlanSource.COACH_ASSIGNED
        assert result.applied_plan.assigned_by == 7

        client_meals = schedule_service.get_scheduled_meals(local_session(3))
        assert len(client_meals) == 10
        assert schedule_service.get_scheduled_meals(coach) == []

    @pytest.mark.parametrize("client_id", [0, -2, "3", True])
    def test_assign_invalid_client(self, schedule_service, sample_template, client_id):
        with pytest.raises(ValidationError):
            schedule_service.assign_meal_plan(
                local_session(7, role="coach"), client_id, request_for(sample_template)
            )

    def test_coach_can_deactivate_assignment(self, schedule_service, sample_template):
        coach = local_session(7, role="coach")
        result = schedule_service.assign_meal_plan(coach, 3, request_for(sample_template))
        outcome = schedule_service.deactivate_applied_plan(
            coach, result.applied_plan.applied_plan_id
        )
        assert outcome.deleted


class TestScheduledMeals:
    """Tests for querying scheduled meals."""

    @pytest.fixture
    def applied(self, schedule_service, session, sample_template):
        return schedule_service.apply_meal_plan(session, request_for(sample_template))

    def test_date_window(self, schedule_service, session, applied):
        meals = schedule_service.get_scheduled_meals(
            session, date_from=TODAY, date_to=TODAY + timedelta(days=2)
        )
        assert {m.scheduled_meal.scheduled_date for m in meals} == {
            TODAY, TODAY + timedelta(days=2),
        }
        assert len(meals) == 5

    def test_completion_filter(self, schedule_service, tracker, session, applied):
        breakfast = applied.scheduled_meals[0]
        summary = schedule_service.get_scheduled_meal_detail(
            session, breakfast.scheduled_meal_id
        )
        tracker.quick_complete(
            session,
            breakfast.scheduled_meal_id,
            summary.meal_time.food_items[0].planned_food_item_id,
        )

        completed = schedule_service.get_scheduled_meals(session, is_completed=True)
        open_meals = schedule_service.get_scheduled_meals(session, is_completed=False)
        assert [m.scheduled_meal.scheduled_meal_id for m in completed] == [
            breakfast.scheduled_meal_id
        ]
        assert len(open_meals) == 9

    def test_pagination(self, schedule_service, session, applied):
        everything = schedule_service.get_scheduled_meals(session)
        page = schedule_service.get_scheduled_meals(session, limit=3, offset=2)
        assert [m.scheduled_meal.scheduled_meal_id for m in page] == [
            m.scheduled_meal.scheduled_meal_id for m in everything[2:5]
        ]

    def test_inverted_window(self, schedule_service, session, applied):
        with pytest.raises(ValidationError):
            schedule_service.get_scheduled_meals(
                session, date_from=TODAY, date_to=TODAY - timedelta(days=1)
            )

    def test_negative_offset(self, schedule_service, session, applied):
        with pytest.raises(ValidationError):
            schedule_service.get_scheduled_meals(session, offset=-1)

    def test_detail(self, schedule_service, session, applied):
        lunch = applied.scheduled_meals[1]
        summary = schedule_service.get_scheduled_meal_detail(session, lunch.scheduled_meal_id)
        assert summary.meal_time.name == "Lunch"
        assert summary.total_foods_count == 2
        assert summary.consumed_foods_count == 0
        # chicken 200 g + rice 150 g
        assert summary.planned_nutrition.calories == pytest.approx(330 + 184.5)

    def test_detail_other_user(self, schedule_service, applied):
        with pytest.raises(NotFoundError):
            schedule_service.get_scheduled_meal_detail(
                local_session(2), applied.scheduled_meals[0].scheduled_meal_id
            )


class TestDeactivate:
    """Tests for ending an applied plan."""

    def test_round_trip(self, schedule_service, tracker, session, sample_template):
        """Meals after the deactivation day disappear; earlier history stays."""
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        plan_id = result.applied_plan.applied_plan_id

        first_meal = result.scheduled_meals[0]
        detail = schedule_service.get_scheduled_meal_detail(session, first_meal.scheduled_meal_id)
        tracker.quick_complete(
            session,
            first_meal.scheduled_meal_id,
            detail.meal_time.food_items[0].planned_food_item_id,
        )
        assert len(schedule_service.get_scheduled_meals(session)) == 10

        cutoff = TODAY + timedelta(days=2)
        outcome = schedule_service.deactivate_applied_plan(session, plan_id, on_date=cutoff)
        assert outcome.deleted

        remaining = schedule_service.get_scheduled_meals(session)
        assert remaining
        assert all(m.scheduled_meal.scheduled_date <= cutoff for m in remaining)
        assert len(remaining) == 5
        assert remaining[0].is_completed

        plans = schedule_service.list_applied_plans(session, active_only=False)
        assert not plans[0].is_active
        assert plans[0].deactivated_on == cutoff
        assert schedule_service.list_applied_plans(session) == []

    def test_deactivate_defaults_to_today(self, schedule_service, session, sample_template):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        schedule_service.deactivate_applied_plan(session, result.applied_plan.applied_plan_id)
        remaining = schedule_service.get_scheduled_meals(session)
        assert {m.scheduled_meal.scheduled_date for m in remaining} == {TODAY}

    def test_deactivate_twice(self, schedule_service, session, sample_template):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        plan_id = result.applied_plan.applied_plan_id
        assert schedule_service.deactivate_applied_plan(session, plan_id).deleted
        again = schedule_service.deactivate_applied_plan(session, plan_id)
        assert not again.deleted
        assert again.already_absent

    def test_deactivate_unknown(self, schedule_service, session):
        outcome = schedule_service.deactivate_applied_plan(session, 12345)
        assert outcome.already_absent

    def test_deactivate_with_key_replays(self, schedule_service, session, sample_template):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        plan_id = result.applied_plan.applied_plan_id
        schedule_service.deactivate_applied_plan(session, plan_id, idempotency_key="k")
        retry = schedule_service.deactivate_applied_plan(session, plan_id, idempotency_key="k")
        assert retry.deleted
        assert retry.replayed

    def test_deactivate_foreign_plan(self, schedule_service, session, sample_template):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        with pytest.raises(NotFoundError):
            schedule_service.deactivate_applied_plan(
                local_session(2), result.applied_plan.applied_plan_id
            )

    def test_logging_after_deactivation_rejected(
        self, schedule_service, tracker, session, sample_template
    ):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        late_meal = result.scheduled_meals[-1]
        detail = schedule_service.get_scheduled_meal_detail(session, late_meal.scheduled_meal_id)
        schedule_service.deactivate_applied_plan(session, result.applied_plan.applied_plan_id)

        with pytest.raises(ValidationError, match="deactivated"):
            tracker.quick_complete(
                session,
                late_meal.scheduled_meal_id,
                detail.meal_time.food_items[0].planned_food_item_id,
            )

    def test_update_after_deactivation_rejected(
        self, schedule_service, tracker, session, sample_template
    ):
        result = schedule_service.apply_meal_plan(session, request_for(sample_template))
        late_meal = result.scheduled_meals[-1]
        detail = schedule_service.get_scheduled_meal_detail(session, late_meal.scheduled_meal_id)
        item = detail.meal_time.food_items[0]
        record = tracker.log_consumption(
            session, late_meal.scheduled_meal_id, item.planned_food_item_id, 10, item.unit
        )
        schedule_service.deactivate_applied_plan(session, result.applied_plan.applied_plan_id)

        with pytest.raises(ValidationError, match="deactivated"):
            tracker.update_consumption(session, record.consumed_food_id, amount=999)
        stored = tracker.get_consumption(session, record.consumed_food_id)
        assert stored.consumed.consumed_amount == 10


def test_start_date_in_future_window(schedule_service, session, sample_template):
    """A window starting on a Thursday takes the next Monday as its first date."""
    start = date(2030, 1, 10)
    result = schedule_service.apply_meal_plan(
        session, request_for(sample_template, weeks=1, start=start)
    )
    dates = sorted({m.scheduled_date for m in result.scheduled_meals})
    assert dates == [date(2030, 1, 14), date(2030, 1, 16)]
