"""Pytest fixtures for mealtrack tests."""

from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path

import pytest

from mealtrack.config import Settings
from mealtrack.db.connection import DatabaseConnection
from mealtrack.nutrition.models import Nutrition
from mealtrack.scheduling.service import ScheduleService
from mealtrack.session import local_session
from mealtrack.templates.models import (
    CatalogFood,
    DailyPlan,
    MealPlan,
    MealTime,
    PlannedFoodItem,
    Unit,
)
from mealtrack.templates.queries import FoodQueries, TemplateQueries
from mealtrack.tracking.food_log import FoodLog
from mealtrack.tracking.tracker import ConsumptionTracker

# A Monday
TODAY = date(2030, 1, 7)


@pytest.fixture
def temp_db():
    """Create a temporary database with schema."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    db = DatabaseConnection(db_path)
    db.initialize_schema()

    yield db

    # Cleanup
    db_path.unlink(missing_ok=True)


@pytest.fixture
def settings():
    """Default settings with no retry delay."""
    s = Settings()
    s.store.retry_backoff_seconds = 0.0
    return s


@pytest.fixture
def session():
    return local_session(1)


@pytest.fixture
def sample_foods(temp_db):
    """Populate the catalog with a few foods (nutrition per serving)."""
    foods = {
        # name: (serving_size, unit, kcal, protein, carbs, fat)
        "Chicken breast": (100, Unit.GRAM, 165, 31, 0, 3.6),
        "Brown rice": (100, Unit.GRAM, 123, 2.7, 26, 1),
        "Rolled oats": (100, Unit.GRAM, 379, 13.2, 67.7, 6.5),
        "Egg": (1, Unit.PIECE, 72, 6.3, 0.4, 4.8),
        "Broccoli": (100, Unit.GRAM, 34, 2.8, 7, 0.4),
    }
    stored = {}
    with temp_db.get_connection() as conn:
        for name, (size, unit, kcal, p, c, f) in foods.items():
            food = CatalogFood(
                food_id=None,
                name=name,
                serving_size=size,
                serving_unit=unit,
                per_serving=Nutrition(calories=kcal, protein=p, carbs=c, fat=f),
            )
            food_id = FoodQueries.add_food(conn, food)
            stored[name] = FoodQueries.get_food(conn, food_id)
    return stored


def _item(food, amount, unit=Unit.GRAM, order=0):
    return PlannedFoodItem(
        planned_food_item_id=None, food=food, amount=amount, unit=unit, order=order
    )


@pytest.fixture
def sample_template(temp_db, sample_foods):
    """Two-day template: day1 has 2 meal times, day2 has 3."""
    f = sample_foods
    plan = MealPlan(
        meal_plan_id=None,
        title="Lean week",
        goal="weight_loss",
        daily_plans=[
            DailyPlan(
                daily_plan_id=None,
                position=1,
                meal_times=[
                    MealTime(None, "Breakfast", food_items=[_item(f["Rolled oats"], 100)], order=0),
                    MealTime(
                        None,
                        "Lunch",
                        food_items=[
                            _item(f["Chicken breast"], 200),
                            _item(f["Brown rice"], 150, order=1),
                        ],
                        order=1,
                    ),
                ],
            ),
            DailyPlan(
                daily_plan_id=None,
                position=2,
                meal_times=[
                    MealTime(
                        None, "Breakfast", food_items=[_item(f["Egg"], 2, Unit.PIECE)], order=0
                    ),
                    MealTime(None, "Lunch", food_items=[_item(f["Chicken breast"], 150)], order=1),
                    MealTime(
                        None,
                        "Dinner",
                        food_items=[
                            _item(f["Brown rice"], 200),
                            _item(f["Broccoli"], 100, order=1),
                        ],
                        order=2,
                    ),
                ],
            ),
        ],
    )
    with temp_db.get_connection() as conn:
        return TemplateQueries.create_meal_plan(conn, plan)


@pytest.fixture
def schedule_service(temp_db, settings):
    return ScheduleService(temp_db, settings, today_fn=lambda: TODAY)


@pytest.fixture
def tracker(temp_db, settings):
    return ConsumptionTracker(temp_db, settings)


@pytest.fixture
def food_log(temp_db, settings):
    return FoodLog(temp_db, settings)
