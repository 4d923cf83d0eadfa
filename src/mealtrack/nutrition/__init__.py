"""Nutrition rollups: per item, per meal, per day and per period."""

from __future__ import annotations

from mealtrack.nutrition.models import MACROS, Nutrition

__all__ = ["MACROS", "Nutrition"]
