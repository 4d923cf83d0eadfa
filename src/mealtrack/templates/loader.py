"""Build meal-plan templates from YAML documents.

Format:

    title: Lean week
    goal: weight_loss
    status: published
    days:
      - day: 1
        meal_times:
          - name: Breakfast
            time: "08:00"
            foods:
              - food: Rolled oats      # food name, or food_id: 12
                amount: 80
                unit: gram

Foods are referenced by exact name or id and must already be in the store.
"""

from __future__ import annotations

import sqlite3
from datetime import time
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from mealtrack.errors import ValidationError
from mealtrack.templates.models import (
    DailyPlan,
    Food,
    MealPlan,
    MealTime,
    PlannedFoodItem,
    PlanStatus,
    Unit,
)
from mealtrack.templates.queries import FoodQueries, TemplateQueries, food_from_row

FoodResolver = Callable[[dict[str, Any]], Food]


def _parse_unit(value: Any) -> Unit:
    try:
        return Unit(str(value))
    except ValueError:
        valid = [u.value for u in Unit]
        raise ValidationError(f"Unknown unit '{value}'. Valid units: {valid}")


def _require_mapping(value: Any, what: str) -> None:
    if not isinstance(value, dict):
        raise ValidationError(f"{what} must be a mapping, got {value!r}")


def _parse_number(value: Any, what: str, kind: Callable[[Any], Any] = float) -> Any:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {what}: {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {what}: {value!r}")


def _parse_time(value: Any) -> Optional[time]:
    if value is None:
        return None
    if isinstance(value, time):
        return value
    # YAML 1.1 reads unquoted 08:00 as sexagesimal minutes
    if isinstance(value, int):
        return time(value // 60 % 24, value % 60)
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid meal time '{value}', expected HH:MM")


def build_meal_plan(
    data: dict[str, Any],
    resolve_food: FoodResolver,
    created_by: Optional[int] = None,
) -> MealPlan:
    """Convert a parsed template document into a MealPlan.

    Args:
        data: Parsed YAML/JSON document
        resolve_food: Maps a food reference dict to a stored Food
        created_by: Author user id

    Returns:
        MealPlan without ids

    Raises:
        ValidationError: If the document is malformed
    """
    if not isinstance(data, dict) or not data.get("title"):
        raise ValidationError("Template must be a mapping with a 'title'")

    daily_plans = []
    for index, day in enumerate(data.get("days") or [], start=1):
        _require_mapping(day, f"Day entry {index}")
        position = _parse_number(day.get("day", index), f"day number of entry {index}", int)
        meal_times = []
        for mt in day.get("meal_times") or []:
            _require_mapping(mt, f"Meal time in day{position}")
            if not mt.get("name"):
                raise ValidationError(f"Meal time in day{position} is missing a name")
            items = []
            for food_ref in mt.get("foods") or []:
                _require_mapping(food_ref, f"Food in {mt['name']}")
                amount = _parse_number(food_ref.get("amount", 0), f"amount in {mt['name']}")
                if amount < 0:
                    raise ValidationError(
                        f"Negative amount for {food_ref!r} in {mt['name']}"
                    )
                food = resolve_food(food_ref)
                unit = _parse_unit(food_ref.get("unit", "gram"))
                try:
                    item = PlannedFoodItem(
                        planned_food_item_id=None, food=food, amount=amount, unit=unit
                    )
                except ValueError as e:
                    raise ValidationError(str(e)) from e
                items.append(item)
            meal_times.append(
                MealTime(
                    meal_time_id=None,
                    name=mt["name"],
                    time_of_day=_parse_time(mt.get("time")),
                    food_items=items,
                )
            )
        try:
            daily_plans.append(
                DailyPlan(daily_plan_id=None, position=position, meal_times=meal_times)
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

    try:
        return MealPlan(
            meal_plan_id=None,
            title=data["title"],
            daily_plans=daily_plans,
            description=data.get("description"),
            goal=data.get("goal"),
            status=PlanStatus(data.get("status", "draft")),
            is_public=bool(data.get("is_public", False)),
            created_by=created_by,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def store_food_resolver(conn: sqlite3.Connection) -> FoodResolver:
    """Resolve food references against the foods table.

    Names only match catalog and custom foods; quick-add foods are rejected
    when referenced by id.
    """

    def resolve(ref: dict[str, Any]) -> Food:
        if "food_id" in ref:
            food = FoodQueries.get_food(conn, _parse_number(ref["food_id"], "food_id", int))
            if food is None:
                raise ValidationError(f"Unknown food_id {ref['food_id']}")
            return food
        name = ref.get("food")
        row = conn.execute(
            "SELECT * FROM foods WHERE name = ? AND kind != 'adhoc' "
            "ORDER BY food_id LIMIT 1",
            (name,),
        ).fetchone()
        if row is None:
            raise ValidationError(f"Unknown food '{name}'")
        return food_from_row(row)

    return resolve


def import_template(
    conn: sqlite3.Connection, path: Path, created_by: Optional[int] = None
) -> MealPlan:
    """Load a YAML template file and store it. Returns the stored plan."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e
    plan = build_meal_plan(data, store_food_resolver(conn), created_by=created_by)
    return TemplateQueries.create_meal_plan(conn, plan)
