"""Read, list and delete operations for stored plans and recipes."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.api.models import CatalogRecipeResponse, PlanDayResponse, PlannedMealResponse, PlanResponse, PlanSummaryResponse, RecipeResponse, ShareLinkResponse
from app.config import Settings
from app.schema.plan_models import ShoppingListCategory
from app.services.shares import build_share_url
from app.storage.factory import _get_plans_repo
from app.storage.plans_repo import PlanNotFoundError, PlanRecord

logger = logging.getLogger(__name__)

_PLAN_NOT_FOUND_MSG = "Plan nicht gefunden."


def _plan_to_response(plan: PlanRecord) -> PlanResponse:
  recipes = [
    RecipeResponse(
      id=recipe.id,
      title=recipe.title,
      ingredients=recipe.ingredients,
      instructions=recipe.instructions,
      total_calories=recipe.total_calories,
      protein=recipe.protein,
      carbs=recipe.carbs,
      fat=recipe.fat,
      category=recipe.category,
    )
    for recipe in plan.recipes
  ]
  days = [PlanDayResponse(day=day.day, total_calories=day.total_calories, meals=[PlannedMealResponse(meal_type=meal.meal_type, recipe_id=meal.recipe.id) for meal in day.meals]) for day in plan.days]
  return PlanResponse(
    id=plan.id,
    name=plan.name,
    created_at=plan.created_at.isoformat(),
    settings=plan.settings,
    share_id=plan.share_id,
    weekly_plan=days,
    recipes=recipes,
    shopping_list=[ShoppingListCategory.model_validate(group) for group in plan.shopping_list],
  )


async def get_plan(plan_id: int, settings: Settings) -> PlanResponse:
  """Load a plan with its recipes grouped by weekday."""
  plan = await _get_plans_repo(settings).get_full_plan(plan_id)
  if plan is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PLAN_NOT_FOUND_MSG)
  return _plan_to_response(plan)


async def delete_plan(plan_id: int, settings: Settings) -> None:
  """Delete a plan; its links and related jobs go with it."""
  deleted = await _get_plans_repo(settings).delete_plan(plan_id)
  if not deleted:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PLAN_NOT_FOUND_MSG)
  logger.info("Deleted plan %s", plan_id)


async def get_share_link(plan_id: int, settings: Settings) -> ShareLinkResponse:
  """Return the public link of a plan that has already been shared."""
  try:
    share_id = await _get_plans_repo(settings).get_share_id(plan_id)
  except PlanNotFoundError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PLAN_NOT_FOUND_MSG) from exc
  if not share_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan wurde noch nicht geteilt.")
  return ShareLinkResponse(share_id=share_id, share_url=build_share_url(settings.share_url_prefix, share_id))


async def list_archive(settings: Settings) -> list[PlanSummaryResponse]:
  """List stored plans, newest first."""
  plans = await _get_plans_repo(settings).list_plans()
  return [PlanSummaryResponse(id=plan.id, name=plan.name, created_at=plan.created_at.isoformat(), settings=plan.settings, share_id=plan.share_id, recipe_count=plan.recipe_count) for plan in plans]


async def list_recipes(settings: Settings, *, category: str | None = None) -> list[CatalogRecipeResponse]:
  """List every stored recipe by title, optionally of a single meal category."""
  recipes = await _get_plans_repo(settings).list_recipes(category=category)
  return [
    CatalogRecipeResponse(
      id=recipe.id,
      title=recipe.title,
      ingredients=recipe.ingredients,
      instructions=recipe.instructions,
      total_calories=recipe.total_calories,
      protein=recipe.protein,
      carbs=recipe.carbs,
      fat=recipe.fat,
      category=recipe.category,
      dietary_preference=recipe.dietary_preference,
      is_gluten_free=recipe.is_gluten_free,
      is_lactose_free=recipe.is_lactose_free,
    )
    for recipe in recipes
  ]
