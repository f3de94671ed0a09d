"""Helper for validating generated plan payloads."""

from __future__ import annotations

from typing import Any, get_args

from pydantic import ValidationError

from .plan_models import GeneratedPlan, MealCategory

MEAL_CATEGORIES: tuple[str, ...] = get_args(MealCategory)


def _format_errors(exc: ValidationError) -> list[str]:
  errors: list[str] = []
  for err in exc.errors():
    loc = ".".join(str(x) for x in err["loc"])
    errors.append(f"{loc}: {err['msg']}")
  return errors


def collect_reference_errors(plan: GeneratedPlan) -> list[str]:
  """Report weekly plan entries that point at recipes the model never produced."""
  known_ids = {str(recipe.id) for recipe in plan.recipes}
  errors: list[str] = []
  for day_index, day in enumerate(plan.weekly_plan):
    for meal_index, meal in enumerate(day.meals):
      if str(meal.recipe_id) not in known_ids:
        errors.append(f"weeklyPlan.{day_index}.meals.{meal_index}.recipeId: unknown recipe id {meal.recipe_id!r}")

  seen: set[str] = set()
  for index, recipe in enumerate(plan.recipes):
    key = str(recipe.id)
    if key in seen:
      errors.append(f"recipes.{index}.id: duplicate recipe id {recipe.id!r}")
    seen.add(key)

  return errors


def validate_plan(payload: Any) -> tuple[bool, list[str], GeneratedPlan | None]:
  """
  Validate a generated plan before anything is persisted.

  Returns:
      Tuple where:
      - ok: bool indicating whether validation succeeded.
      - errors: list of human-readable validation errors.
      - model: parsed GeneratedPlan when validation passes, otherwise None.
  """

  if not isinstance(payload, dict):
    return False, [f"<root>: expected an object, got {type(payload).__name__}"], None

  try:
    plan = GeneratedPlan.model_validate(payload)
  except ValidationError as exc:
    return False, _format_errors(exc), None

  errors = collect_reference_errors(plan)
  if errors:
    return False, errors, None

  return True, [], plan
