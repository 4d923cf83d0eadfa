"""Nutrition value types shared by templates, tracking and reports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

MACROS = ("calories", "protein", "carbs", "fat")


@dataclass(frozen=True)
class Nutrition:
    """Calories (kcal) and macronutrients (g)."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def __add__(self, other: "Nutrition") -> "Nutrition":
        return Nutrition(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )

    def scaled(self, factor: float) -> "Nutrition":
        return Nutrition(
            calories=self.calories * factor,
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
        )

    def rounded(self, ndigits: int = 2) -> "Nutrition":
        return Nutrition(
            calories=round(self.calories, ndigits),
            protein=round(self.protein, ndigits),
            carbs=round(self.carbs, ndigits),
            fat=round(self.fat, ndigits),
        )

    def get(self, macro: str) -> float:
        if macro not in MACROS:
            raise KeyError(f"Unknown macro: {macro}")
        return getattr(self, macro)

    def to_dict(self) -> dict[str, float]:
        rounded = self.rounded()
        return {m: rounded.get(m) for m in MACROS}

    @classmethod
    def total(cls, items: Iterable["Nutrition"]) -> "Nutrition":
        result = cls()
        for item in items:
            result = result + item
        return result
