"""Schema package exports."""

from .validate_plan import MEAL_CATEGORIES, validate_plan

__all__ = ["MEAL_CATEGORIES", "validate_plan"]
