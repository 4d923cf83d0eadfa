"""Tests for the manual food log."""

from __future__ import annotations

from datetime import timedelta

import pytest

from mealtrack.errors import NotFoundError, ValidationError
from mealtrack.nutrition.models import Nutrition
from mealtrack.session import local_session
from mealtrack.tracking.models import MealType

from conftest import TODAY


class TestAddEntry:
    """Tests for logging stored foods."""

    def test_catalog_food_scales(self, food_log, session, sample_foods):
        rice = sample_foods["Brown rice"]
        entry = food_log.add_entry(session, rice.food_id, 250, "gram", "dinner", TODAY)
        assert entry.entry_id is not None
        assert entry.meal_type == MealType.DINNER
        assert entry.food.kind == "catalog"
        assert entry.nutrition.calories == pytest.approx(307.5)

    def test_unknown_food(self, food_log, session):
        with pytest.raises(NotFoundError):
            food_log.add_entry(session, 999, 10, "gram", "snack", TODAY)

    def test_unknown_meal_type(self, food_log, session, sample_foods):
        with pytest.raises(ValidationError, match="meal type"):
            food_log.add_entry(
                session, sample_foods["Egg"].food_id, 1, "piece", "brunch", TODAY
            )

    def test_negative_amount(self, food_log, session, sample_foods):
        with pytest.raises(ValidationError):
            food_log.add_entry(session, sample_foods["Egg"].food_id, -1, "piece", "snack", TODAY)


class TestQuickAdd:
    """Tests for ad-hoc entries."""

    def test_values_are_absolute(self, food_log, session):
        entry = food_log.quick_add(
            session, "Restaurant curry", Nutrition(calories=850, protein=30, carbs=90, fat=40),
            "dinner", TODAY, notes="estimate",
        )
        assert entry.food.kind == "adhoc"
        assert entry.amount == 1
        assert entry.nutrition == Nutrition(calories=850, protein=30, carbs=90, fat=40)
        assert entry.notes == "estimate"

    def test_blank_name(self, food_log, session):
        with pytest.raises(ValidationError):
            food_log.quick_add(session, "  ", Nutrition(calories=100), "snack", TODAY)

    def test_negative_macro(self, food_log, session):
        with pytest.raises(ValidationError, match="protein"):
            food_log.quick_add(
                session, "Bad", Nutrition(calories=100, protein=-1), "snack", TODAY
            )


class TestEditAndList:
    """Tests for updating, deleting and listing entries."""

    def test_update_entry(self, food_log, session, sample_foods):
        entry = food_log.add_entry(
            session, sample_foods["Egg"].food_id, 2, "piece", "breakfast", TODAY
        )
        updated = food_log.update_entry(
            session, entry.entry_id, amount=3, meal_type="snack",
            consumed_on=TODAY + timedelta(days=1),
        )
        assert updated.amount == 3
        assert updated.meal_type == MealType.SNACK
        assert updated.consumed_on == TODAY + timedelta(days=1)
        assert updated.nutrition.calories == pytest.approx(216)

    def test_update_other_users_entry(self, food_log, session, sample_foods):
        entry = food_log.add_entry(
            session, sample_foods["Egg"].food_id, 2, "piece", "breakfast", TODAY
        )
        with pytest.raises(NotFoundError):
            food_log.update_entry(local_session(2), entry.entry_id, amount=1)

    def test_list_range(self, food_log, session):
        for offset in range(5):
            food_log.quick_add(
                session, f"Meal {offset}", Nutrition(calories=100), "lunch",
                TODAY + timedelta(days=offset),
            )
        entries = food_log.list_entries(
            session, TODAY + timedelta(days=1), TODAY + timedelta(days=3)
        )
        assert [e.food.name for e in entries] == ["Meal 1", "Meal 2", "Meal 3"]

    def test_list_inverted_range(self, food_log, session):
        with pytest.raises(ValidationError):
            food_log.list_entries(session, TODAY, TODAY - timedelta(days=1))

    def test_delete_entry(self, food_log, session):
        entry = food_log.quick_add(session, "Bar", Nutrition(calories=200), "snack", TODAY)
        result = food_log.delete_entry(session, entry.entry_id)
        assert result.deleted
        assert food_log.list_entries(session, TODAY, TODAY) == []

        again = food_log.delete_entry(session, entry.entry_id)
        assert again.already_absent

    def test_delete_with_key(self, food_log, session):
        entry = food_log.quick_add(session, "Bar", Nutrition(calories=200), "snack", TODAY)
        food_log.delete_entry(session, entry.entry_id, idempotency_key="abc")
        retry = food_log.delete_entry(session, entry.entry_id, idempotency_key="abc")
        assert retry.deleted
        assert retry.replayed

    def test_key_reused_for_other_entry(self, food_log, session):
        first = food_log.quick_add(session, "Bar", Nutrition(calories=200), "snack", TODAY)
        second = food_log.quick_add(session, "Tea", Nutrition(calories=5), "snack", TODAY)
        food_log.delete_entry(session, first.entry_id, idempotency_key="abc")
        with pytest.raises(ValidationError, match="food_entry"):
            food_log.delete_entry(session, second.entry_id, idempotency_key="abc")
        assert [e.entry_id for e in food_log.list_entries(session, TODAY, TODAY)] == [
            second.entry_id
        ]
