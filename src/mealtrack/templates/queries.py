"""Database queries for foods and meal-plan templates."""

from __future__ import annotations

import sqlite3
from datetime import time
from typing import Optional

from mealtrack.nutrition.models import Nutrition
from mealtrack.templates.models import (
    AdHocFood,
    CatalogFood,
    CustomFood,
    DailyPlan,
    Food,
    MealPlan,
    MealTime,
    PlannedFoodItem,
    PlanStatus,
    Unit,
)


def food_from_row(row: sqlite3.Row) -> Food:
    """Build the food variant named by the row's `kind` column."""
    nutrition = Nutrition(
        calories=row["calories"],
        protein=row["protein"],
        carbs=row["carbs"],
        fat=row["fat"],
    )
    kind = row["kind"]
    if kind == "catalog":
        return CatalogFood(
            food_id=row["food_id"],
            name=row["name"],
            serving_size=row["serving_size"],
            serving_unit=Unit(row["serving_unit"]),
            per_serving=nutrition,
        )
    if kind == "custom":
        return CustomFood(
            food_id=row["food_id"],
            name=row["name"],
            serving_size=row["serving_size"],
            serving_unit=Unit(row["serving_unit"]),
            per_serving=nutrition,
            owner_user_id=row["owner_user_id"],
        )
    if kind == "adhoc":
        return AdHocFood(
            food_id=row["food_id"],
            name=row["name"],
            nutrition=nutrition,
            serving_unit=Unit(row["serving_unit"]),
        )
    raise ValueError(f"Unknown food kind: {kind}")


def _parse_time(value: Optional[str]) -> Optional[time]:
    return time.fromisoformat(value) if value else None


class FoodQueries:
    """Query functions for the foods table."""

    @staticmethod
    def add_food(conn: sqlite3.Connection, food: Food) -> int:
        """Insert a food of any variant and return its food_id."""
        owner = food.owner_user_id if isinstance(food, CustomFood) else None
        n = food.per_serving
        cursor = conn.execute(
            """
            INSERT INTO foods (kind, name, serving_size, serving_unit,
                               calories, protein, carbs, fat, owner_user_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                food.kind,
                food.name,
                food.serving_size,
                food.serving_unit.value,
                n.calories,
                n.protein,
                n.carbs,
                n.fat,
                owner,
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def get_food(conn: sqlite3.Connection, food_id: int) -> Optional[Food]:
        row = conn.execute(
            "SELECT * FROM foods WHERE food_id = ?", (food_id,)
        ).fetchone()
        return food_from_row(row) if row else None

    @staticmethod
    def search_foods(
        conn: sqlite3.Connection,
        search_term: str = "",
        kind: Optional[str] = None,
        limit: int = 50,
    ) -> list[Food]:
        """Search foods by name using LIKE matching."""
        query = "SELECT * FROM foods WHERE name LIKE ?"
        params: list = [f"%{search_term}%"]
        if kind:
            query += " AND kind = ?"
            params.append(kind)
        query += " ORDER BY name LIMIT ?"
        params.append(limit)
        return [food_from_row(r) for r in conn.execute(query, params).fetchall()]

    @staticmethod
    def get_catalog_names(conn: sqlite3.Connection) -> set[str]:
        rows = conn.execute("SELECT name FROM foods WHERE kind = 'catalog'").fetchall()
        return {row[0] for row in rows}


class TemplateQueries:
    """Read and create meal-plan templates."""

    @staticmethod
    def create_meal_plan(conn: sqlite3.Connection, plan: MealPlan) -> MealPlan:
        """Insert a full template hierarchy.

        Foods must already exist (food_id set). Returns a copy of the plan
        with every generated id filled in.
        """
        cursor = conn.execute(
            """
            INSERT INTO meal_plans (title, description, goal, status, is_public, created_by)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                plan.title,
                plan.description,
                plan.goal,
                plan.status.value,
                plan.is_public,
                plan.created_by,
            ),
        )
        meal_plan_id = cursor.lastrowid
        daily_plans: list[DailyPlan] = []

        for dp in plan.ordered_daily_plans:
            cursor = conn.execute(
                "INSERT INTO daily_plans (meal_plan_id, position) VALUES (?, ?)",
                (meal_plan_id, dp.position),
            )
            daily_plan_id = cursor.lastrowid
            meal_times: list[MealTime] = []

            for mt_order, mt in enumerate(dp.meal_times):
                cursor = conn.execute(
                    """
                    INSERT INTO meal_times (daily_plan_id, name, time_of_day, sort_order)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        daily_plan_id,
                        mt.name,
                        mt.time_of_day.strftime("%H:%M") if mt.time_of_day else None,
                        mt_order,
                    ),
                )
                meal_time_id = cursor.lastrowid
                items: list[PlannedFoodItem] = []

                for item_order, item in enumerate(mt.food_items):
                    if item.food.food_id is None:
                        raise ValueError(
                            f"Food '{item.food.name}' must be stored before it is planned"
                        )
                    cursor = conn.execute(
                        """
                        INSERT INTO planned_food_items
                            (meal_time_id, food_id, amount, unit, sort_order)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (
                            meal_time_id,
                            item.food.food_id,
                            item.amount,
                            item.unit.value,
                            item_order,
                        ),
                    )
                    items.append(
                        PlannedFoodItem(
                            planned_food_item_id=cursor.lastrowid,
                            food=item.food,
                            amount=item.amount,
                            unit=item.unit,
                            order=item_order,
                        )
                    )

                meal_times.append(
                    MealTime(
                        meal_time_id=meal_time_id,
                        name=mt.name,
                        time_of_day=mt.time_of_day,
                        food_items=items,
                        order=mt_order,
                    )
                )

            daily_plans.append(
                DailyPlan(
                    daily_plan_id=daily_plan_id,
                    position=dp.position,
                    meal_times=meal_times,
                )
            )

        return MealPlan(
            meal_plan_id=meal_plan_id,
            title=plan.title,
            daily_plans=daily_plans,
            description=plan.description,
            goal=plan.goal,
            status=plan.status,
            is_public=plan.is_public,
            created_by=plan.created_by,
        )

    @staticmethod
    def get_meal_plan(
        conn: sqlite3.Connection, meal_plan_id: int
    ) -> Optional[MealPlan]:
        """Load a full template hierarchy, children in template order."""
        plan_row = conn.execute(
            "SELECT * FROM meal_plans WHERE meal_plan_id = ?", (meal_plan_id,)
        ).fetchone()
        if plan_row is None:
            return None

        day_rows = conn.execute(
            """
            SELECT daily_plan_id, position FROM daily_plans
            WHERE meal_plan_id = ? ORDER BY position
            """,
            (meal_plan_id,),
        ).fetchall()

        daily_plans = []
        for day_row in day_rows:
            mt_rows = conn.execute(
                """
                SELECT meal_time_id FROM meal_times
                WHERE daily_plan_id = ? ORDER BY sort_order, meal_time_id
                """,
                (day_row["daily_plan_id"],),
            ).fetchall()
            meal_times = [
                TemplateQueries.get_meal_time(conn, r["meal_time_id"]) for r in mt_rows
            ]
            daily_plans.append(
                DailyPlan(
                    daily_plan_id=day_row["daily_plan_id"],
                    position=day_row["position"],
                    meal_times=[mt for mt in meal_times if mt is not None],
                )
            )

        return MealPlan(
            meal_plan_id=plan_row["meal_plan_id"],
            title=plan_row["title"],
            daily_plans=daily_plans,
            description=plan_row["description"],
            goal=plan_row["goal"],
            status=PlanStatus(plan_row["status"]),
            is_public=bool(plan_row["is_public"]),
            created_by=plan_row["created_by"],
        )

    @staticmethod
    def get_meal_time(
        conn: sqlite3.Connection, meal_time_id: int
    ) -> Optional[MealTime]:
        """Load one meal time with its planned foods."""
        mt_row = conn.execute(
            "SELECT * FROM meal_times WHERE meal_time_id = ?", (meal_time_id,)
        ).fetchone()
        if mt_row is None:
            return None

        item_rows = conn.execute(
            """
            SELECT p.planned_food_item_id, p.amount, p.unit, p.sort_order, f.*
            FROM planned_food_items p
            JOIN foods f ON f.food_id = p.food_id
            WHERE p.meal_time_id = ?
            ORDER BY p.sort_order, p.planned_food_item_id
            """,
            (meal_time_id,),
        ).fetchall()

        items = [
            PlannedFoodItem(
                planned_food_item_id=row["planned_food_item_id"],
                food=food_from_row(row),
                amount=row["amount"],
                unit=Unit(row["unit"]),
                order=row["sort_order"],
            )
            for row in item_rows
        ]

        return MealTime(
            meal_time_id=mt_row["meal_time_id"],
            name=mt_row["name"],
            time_of_day=_parse_time(mt_row["time_of_day"]),
            food_items=items,
            order=mt_row["sort_order"],
        )

    @staticmethod
    def list_meal_plans(
        conn: sqlite3.Connection, created_by: Optional[int] = None
    ) -> list[sqlite3.Row]:
        """List template headers with day counts."""
        query = """
            SELECT m.meal_plan_id, m.title, m.goal, m.status, m.is_public,
                   m.created_by, COUNT(d.daily_plan_id) AS daily_plans_count
            FROM meal_plans m
            LEFT JOIN daily_plans d ON d.meal_plan_id = m.meal_plan_id
        """
        params: list = []
        if created_by is not None:
            query += " WHERE m.created_by = ?"
            params.append(created_by)
        query += " GROUP BY m.meal_plan_id ORDER BY m.meal_plan_id"
        return conn.execute(query, params).fetchall()
