"""Meal-plan scheduling and consumption tracking engine."""

__version__ = "0.1.0"
