"""Report value types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from mealtrack.nutrition.aggregator import DayTotals, MealSummary
from mealtrack.nutrition.models import Nutrition
from mealtrack.tracking.models import FoodEntry


@dataclass(frozen=True)
class MacroAdherence:
    goal: float
    average_consumed: float
    adherence_percentage: float


@dataclass
class MealTypeBreakdown:
    """Manual entries of one meal type."""

    count: int = 0
    nutrition: Nutrition = field(default_factory=Nutrition)


@dataclass
class PeriodReport:
    """Totals, daily averages and goal adherence over a date window."""

    date_from: date
    date_to: date
    total_days: int
    totals: Nutrition
    averages: Nutrition
    goal_adherence: dict[str, MacroAdherence] = field(default_factory=dict)
    meal_type_breakdown: dict[str, MealTypeBreakdown] = field(default_factory=dict)
    daily_totals: dict[date, DayTotals] = field(default_factory=dict)


@dataclass
class TrackingStats:
    """Scheduled-meal completion and consumed-vs-planned nutrition."""

    date_from: date
    date_to: date
    total_meals: int
    completed_meals: int
    completion_rate: float
    consumed: Nutrition
    planned: Nutrition
    adherence_percentage: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class GoalProgress:
    """Progress toward one daily target. `remaining` goes negative when over."""

    consumed: float
    goal: float
    remaining: float
    percentage: float


@dataclass
class DailyLog:
    """Everything counted toward one day."""

    day: date
    totals: DayTotals
    meals: list[MealSummary] = field(default_factory=list)
    entries: list[FoodEntry] = field(default_factory=list)
    goal_progress: dict[str, GoalProgress] = field(default_factory=dict)
