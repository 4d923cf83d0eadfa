"""JSON field contracts for the presentation layer.

`*_to_dict` functions turn engine results into plain dicts that
`json.dumps` accepts; `parse_*` functions validate incoming payloads and
raise ValidationError on anything malformed. Nutrition values are rounded
to 2 decimals on the way out, never inside the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional

from mealtrack.errors import ValidationError
from mealtrack.nutrition.aggregator import ConsumedItemSummary, DayTotals, MealSummary
from mealtrack.reporting.goals import CalorieGoal
from mealtrack.reporting.models import DailyLog, PeriodReport, TrackingStats
from mealtrack.scheduling.models import AppliedMealPlan, RecurrenceRequest, Weekday
from mealtrack.templates.models import MealPlan, PlannedFoodItem, Unit
from mealtrack.tracking.models import DeleteResult, FoodEntry
from mealtrack.tracking.tracker import coerce_unit, validate_amount


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(sep=" ", timespec="seconds") if value else None


def _hhmm(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


# ============================================================================
# Outbound
# ============================================================================


def applied_plan_to_dict(plan: AppliedMealPlan) -> dict[str, Any]:
    return {
        "applied_plan": {
            "id": plan.applied_plan_id,
            "meal_plan_id": plan.meal_plan_id,
            "meal_plan_title": plan.meal_plan_title,
            "selected_days": [d.value for d in plan.selected_days],
            "weeks_count": plan.weeks_count,
            "start_date": _iso(plan.start_date),
            "end_date": _iso(plan.end_date),
            "is_active": plan.is_active,
            "source": plan.source.value,
            "assigned_by": plan.assigned_by,
            "deactivated_on": _iso(plan.deactivated_on),
        }
    }


def scheduled_meal_to_dict(summary: MealSummary) -> dict[str, Any]:
    """List view of a scheduled meal with its derived completion."""
    meal = summary.scheduled_meal
    return {
        "id": meal.scheduled_meal_id,
        "meal_time_name": summary.meal_time.name,
        "meal_time_time": _hhmm(summary.meal_time.time_of_day),
        "daily_plan_day": meal.daily_plan_day,
        "scheduled_date": _iso(meal.scheduled_date),
        "week_number": meal.week_number,
        "is_completed": summary.is_completed,
        "completed_at": _timestamp(meal.completed_at) if summary.is_completed else None,
        "completion_percentage": summary.completion_percentage,
        "consumed_foods_count": summary.consumed_foods_count,
        "total_foods_count": summary.total_foods_count,
    }


def planned_food_to_dict(item: PlannedFoodItem) -> dict[str, Any]:
    data = {
        "id": item.planned_food_item_id,
        "food_id": item.food.food_id,
        "food_name": item.food.name,
        "food_kind": item.food.kind,
        "amount": item.amount,
        "unit": item.unit.value,
    }
    data.update(item.nutrition.to_dict())
    return data


def consumed_food_to_dict(item: ConsumedItemSummary) -> dict[str, Any]:
    record = item.consumed
    data: dict[str, Any] = {
        "id": record.consumed_food_id,
        "meal_plan_food_item": record.planned_food_item_id,
        "food_name": item.planned.food.name,
        "consumed_amount": record.consumed_amount,
        "consumed_unit": record.consumed_unit.value,
        "planned_amount": item.planned.amount,
        "planned_unit": item.planned.unit.value,
    }
    data.update(item.nutrition.to_dict())
    data.update(
        {
            "notes": record.notes,
            "completion_percentage": item.completion.completion_percentage,
            "is_fully_consumed": item.completion.is_fully_consumed,
            "created_at": _timestamp(record.created_at),
        }
    )
    return data


def scheduled_meal_detail_to_dict(summary: MealSummary) -> dict[str, Any]:
    data = scheduled_meal_to_dict(summary)
    consumed = summary.consumed_nutrition.to_dict()
    data.update(
        {
            "consumed_calories": consumed["calories"],
            "consumed_nutrition": {m: consumed[m] for m in ("protein", "carbs", "fat")},
            "planned_nutrition": summary.planned_nutrition.to_dict(),
            "consumed_foods": [consumed_food_to_dict(i) for i in summary.items],
            "planned_foods": [planned_food_to_dict(i) for i in summary.meal_time.food_items],
        }
    )
    return data


def delete_result_to_dict(result: DeleteResult) -> dict[str, Any]:
    return {
        "resource": result.resource,
        "id": result.resource_id,
        "deleted": result.deleted,
        "already_absent": result.already_absent,
        "replayed": result.replayed,
    }


def food_entry_to_dict(entry: FoodEntry) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": entry.entry_id,
        "food_id": entry.food.food_id,
        "food_name": entry.food.name,
        "food_kind": entry.food.kind,
        "amount": entry.amount,
        "unit": entry.unit.value,
        "meal_type": entry.meal_type.value,
        "consumed_on": _iso(entry.consumed_on),
        "notes": entry.notes,
    }
    data.update(entry.nutrition.to_dict())
    return data


def goal_to_dict(goal: CalorieGoal) -> dict[str, Any]:
    return {
        "id": goal.goal_id,
        "daily_calories": goal.daily_calories,
        "daily_protein": goal.daily_protein,
        "daily_carbs": goal.daily_carbs,
        "daily_fat": goal.daily_fat,
        "is_active": goal.is_active,
    }


def report_to_dict(report: PeriodReport) -> dict[str, Any]:
    return {
        "date_from": _iso(report.date_from),
        "date_to": _iso(report.date_to),
        "total_days": report.total_days,
        "totals": report.totals.to_dict(),
        "averages": report.averages.to_dict(),
        "goal_adherence": {
            macro: {
                "goal": a.goal,
                "average_consumed": a.average_consumed,
                "adherence_percentage": a.adherence_percentage,
            }
            for macro, a in report.goal_adherence.items()
        },
        "meal_type_breakdown": {
            meal_type: {
                "count": b.count,
                **{f"total_{m}": v for m, v in b.nutrition.to_dict().items()},
            }
            for meal_type, b in report.meal_type_breakdown.items()
        },
        "daily_totals": {
            _iso(day): day_totals_to_dict(totals)
            for day, totals in report.daily_totals.items()
        },
    }


def tracking_stats_to_dict(stats: TrackingStats) -> dict[str, Any]:
    return {
        "date_range": {"from": _iso(stats.date_from), "to": _iso(stats.date_to)},
        "meal_completion": {
            "total_meals": stats.total_meals,
            "completed_meals": stats.completed_meals,
            "completion_rate": stats.completion_rate,
        },
        "nutrition_comparison": {
            "consumed": stats.consumed.to_dict(),
            "planned": stats.planned.to_dict(),
            "adherence_percentage": dict(stats.adherence_percentage),
        },
    }


def day_totals_to_dict(totals: DayTotals) -> dict[str, Any]:
    return {
        "total": totals.total.to_dict(),
        "scheduled": totals.scheduled.to_dict(),
        "manual": totals.manual.to_dict(),
        "meals_count": totals.meals_count,
        "entries_count": totals.entries_count,
    }


def daily_log_to_dict(log: DailyLog) -> dict[str, Any]:
    return {
        "date": _iso(log.day),
        "totals": day_totals_to_dict(log.totals),
        "goal_progress": {
            macro: {
                "consumed": p.consumed,
                "goal": p.goal,
                "remaining": p.remaining,
                "percentage": p.percentage,
            }
            for macro, p in log.goal_progress.items()
        },
        "meals": [scheduled_meal_to_dict(m) for m in log.meals],
        "entries": [food_entry_to_dict(e) for e in log.entries],
    }


def meal_plan_to_dict(plan: MealPlan) -> dict[str, Any]:
    """Template with bottom-up totals at every level."""
    return {
        "id": plan.meal_plan_id,
        "title": plan.title,
        "description": plan.description,
        "goal": plan.goal,
        "status": plan.status.value,
        "is_public": plan.is_public,
        "total_nutrition": plan.nutrition.to_dict(),
        "daily_plans": [
            {
                "id": dp.daily_plan_id,
                "day": dp.day,
                "total_nutrition": dp.nutrition.to_dict(),
                "meal_times": [
                    {
                        "id": mt.meal_time_id,
                        "name": mt.name,
                        "time": _hhmm(mt.time_of_day),
                        "total_nutrition": mt.nutrition.to_dict(),
                        "foods": [planned_food_to_dict(i) for i in mt.food_items],
                    }
                    for mt in dp.meal_times
                ],
            }
            for dp in plan.ordered_daily_plans
        ],
    }


# ============================================================================
# Inbound
# ============================================================================


@dataclass(frozen=True)
class LogRequest:
    planned_food_item_id: int
    consumed_amount: float
    consumed_unit: Unit
    notes: Optional[str] = None


def _require(payload: Any, *keys: str) -> None:
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")
    missing = [k for k in keys if payload.get(k) is None]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


def _positive_int(payload: dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{key} must be a positive integer, got {value!r}")
    return value


def parse_date(value: Any, field_name: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD, got {value!r}")


def parse_recurrence_request(payload: Any) -> RecurrenceRequest:
    """Parse `{meal_plan_id, selected_days, weeks_count, start_date}`.

    Range checks on weeks_count and start_date happen at expansion time.
    """
    _require(payload, "meal_plan_id", "selected_days", "weeks_count", "start_date")
    days_raw = payload["selected_days"]
    if not isinstance(days_raw, list):
        raise ValidationError("selected_days must be a list of weekday names")
    try:
        days = frozenset(Weekday.parse(str(d)) for d in days_raw)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    weeks_count = payload["weeks_count"]
    if isinstance(weeks_count, bool) or not isinstance(weeks_count, int):
        raise ValidationError(f"weeks_count must be an integer, got {weeks_count!r}")

    return RecurrenceRequest(
        meal_plan_id=_positive_int(payload, "meal_plan_id"),
        selected_days=days,
        weeks_count=weeks_count,
        start_date=parse_date(payload["start_date"], "start_date"),
    )


def parse_assign_request(payload: Any) -> tuple[int, RecurrenceRequest]:
    """Parse an assign payload: a recurrence request plus `client_id`."""
    _require(payload, "client_id")
    return _positive_int(payload, "client_id"), parse_recurrence_request(payload)


def parse_log_request(payload: Any) -> LogRequest:
    """Parse `{meal_plan_food_item_id, consumed_amount, consumed_unit, notes?}`."""
    _require(payload, "meal_plan_food_item_id", "consumed_amount", "consumed_unit")
    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")
    return LogRequest(
        planned_food_item_id=_positive_int(payload, "meal_plan_food_item_id"),
        consumed_amount=validate_amount(payload["consumed_amount"]),
        consumed_unit=coerce_unit(payload["consumed_unit"]),
        notes=notes,
    )
