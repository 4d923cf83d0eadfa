"""Data models for applied meal plans and scheduled meals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

MIN_WEEKS = 1
MAX_WEEKS = 52


class Weekday(Enum):
    """Calendar weekday, numbered like date.weekday() via `index`."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        return list(Weekday).index(self)

    @classmethod
    def from_date(cls, d: date) -> "Weekday":
        return list(cls)[d.weekday()]

    @classmethod
    def parse(cls, value: str) -> "Weekday":
        """Accept full names or three-letter abbreviations, any case."""
        key = value.strip().lower()
        for day in cls:
            if key in (day.value, day.value[:3]):
                return day
        raise ValueError(f"Unknown weekday: {value}")


class PlanSource(Enum):
    SELF_APPLIED = "self_applied"
    COACH_ASSIGNED = "coach_assigned"


@dataclass(frozen=True)
class RecurrenceRequest:
    """Parameters of an apply/assign action."""

    meal_plan_id: int
    selected_days: frozenset[Weekday]
    weeks_count: int
    start_date: date

    @property
    def ordered_days(self) -> list[Weekday]:
        return sorted(self.selected_days, key=lambda d: d.index)


@dataclass
class AppliedMealPlan:
    """A recurrence binding of a user to a template. Soft-ended, never edited."""

    applied_plan_id: Optional[int]
    user_id: int
    meal_plan_id: int
    selected_days: list[Weekday]
    weeks_count: int
    start_date: date
    is_active: bool = True
    source: PlanSource = PlanSource.SELF_APPLIED
    assigned_by: Optional[int] = None
    deactivated_on: Optional[date] = None
    meal_plan_title: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def end_date(self) -> date:
        """Last day of the recurrence window (inclusive)."""
        return self.start_date + timedelta(days=self.weeks_count * 7 - 1)


@dataclass
class ScheduledMeal:
    """One dated occurrence of a template meal time."""

    scheduled_meal_id: Optional[int]
    scheduled_date: date
    week_number: int
    daily_plan_id: Optional[int]
    daily_plan_position: int
    meal_time_id: Optional[int]
    meal_time_name: str = ""
    meal_time_time: Optional[time] = None
    applied_plan_id: Optional[int] = None
    user_id: Optional[int] = None
    is_active: bool = True
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    sequence: int = 0

    @property
    def daily_plan_day(self) -> str:
        return f"day{self.daily_plan_position}"


@dataclass
class AppliedSchedule:
    """Result of applying or assigning a template."""

    applied_plan: AppliedMealPlan
    scheduled_meals: list[ScheduledMeal]
