"""Postgres-backed repository for meal plans using SQLAlchemy."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.core.database import get_session_factory
from app.schema.plan_models import WEEK_DAYS, GeneratedPlan, GeneratedRecipe
from app.schema.plans import Plan, PlanRecipe, Recipe
from app.storage.plans_repo import PlanDayRecord, PlannedMealRecord, PlanNotFoundError, PlanRecord, PlansRepository, PlanSummaryRecord, RecipeRecord

logger = logging.getLogger(__name__)

_DAY_RANK = {day: index for index, day in enumerate(WEEK_DAYS)}


def _day_sort_key(day: str) -> tuple[int, str]:
  # Unknown day labels sort after the regular week, alphabetically.
  return (_DAY_RANK.get(day, len(WEEK_DAYS)), day)


def _recipe_to_record(recipe: Recipe) -> RecipeRecord:
  return RecipeRecord(
    id=recipe.id,
    title=recipe.title,
    ingredients=list(recipe.ingredients or []),
    instructions=list(recipe.instructions or []),
    total_calories=recipe.total_calories,
    protein=recipe.protein,
    carbs=recipe.carbs,
    fat=recipe.fat,
    category=recipe.category,
    dietary_preference=recipe.dietary_preference,
    is_gluten_free=recipe.is_gluten_free,
    is_lactose_free=recipe.is_lactose_free,
  )


class PostgresPlansRepository(PlansRepository):
  """Persist plans, recipes and plan/recipe links using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def save_plan(self, *, settings: dict[str, Any], plan: GeneratedPlan) -> int:
    async with self._session_factory() as session:
      async with session.begin():
        plan_row = Plan(name=plan.name, settings=settings, shopping_list=[item.model_dump(by_alias=True) for item in plan.shopping_list])
        session.add(plan_row)
        await session.flush()

        recipe_ids: dict[str, int] = {}
        rows_by_title: dict[str, int] = {}
        for recipe in plan.recipes:
          if recipe.title not in rows_by_title:
            rows_by_title[recipe.title] = await self._upsert_recipe(session, recipe, settings)
          recipe_ids[str(recipe.id)] = rows_by_title[recipe.title]

        for day in plan.weekly_plan:
          for meal in day.meals:
            await self._link_recipe(session, plan_id=plan_row.id, recipe_id=recipe_ids[str(meal.recipe_id)], day_of_week=day.day, meal_type=meal.meal_type)

        plan_id = plan_row.id

    logger.info("Saved plan %s with %d recipes", plan_id, len(rows_by_title))
    return plan_id

  async def _upsert_recipe(self, session: AsyncSession, recipe: GeneratedRecipe, settings: dict[str, Any]) -> int:
    """Insert the recipe unless a row with the same title exists; return the stored id either way."""
    values = {
      "title": recipe.title,
      "ingredients": list(recipe.ingredients),
      "instructions": list(recipe.instructions),
      "total_calories": float(recipe.total_calories),
      "protein": None if recipe.protein is None else float(recipe.protein),
      "carbs": None if recipe.carbs is None else float(recipe.carbs),
      "fat": None if recipe.fat is None else float(recipe.fat),
      "category": recipe.category,
      "dietary_preference": settings.get("dietaryPreference"),
      "diet_type": settings.get("dietType"),
      "dish_complexity": settings.get("dishComplexity"),
      "is_gluten_free": bool(settings.get("isGlutenFree", False)),
      "is_lactose_free": bool(settings.get("isLactoseFree", False)),
    }
    insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    # A concurrent save of the same title waits on the unique index and then inserts nothing.
    await session.execute(insert(Recipe).values(**values).on_conflict_do_nothing(index_elements=[Recipe.title]))
    return (await session.execute(select(Recipe.id).where(Recipe.title == recipe.title))).scalar_one()

  async def _link_recipe(self, session: AsyncSession, *, plan_id: int, recipe_id: int, day_of_week: str, meal_type: str) -> None:
    session.add(PlanRecipe(plan_id=plan_id, recipe_id=recipe_id, day_of_week=day_of_week, meal_type=meal_type))
    await session.flush()

  async def get_full_plan(self, plan_id: int) -> PlanRecord | None:
    async with self._session_factory() as session:
      stmt = select(Plan).where(Plan.id == plan_id).options(selectinload(Plan.entries).selectinload(PlanRecipe.recipe))
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._model_to_record(row)

  async def plan_exists(self, plan_id: int) -> bool:
    async with self._session_factory() as session:
      count = await session.scalar(select(func.count()).select_from(Plan).where(Plan.id == plan_id))
      return bool(count)

  async def set_share_id(self, plan_id: int, share_id: str) -> None:
    async with self._session_factory() as session:
      async with session.begin():
        row = await session.get(Plan, plan_id, with_for_update=True)
        if row is None:
          raise PlanNotFoundError(plan_id)
        row.share_id = share_id

  async def get_share_id(self, plan_id: int) -> str | None:
    async with self._session_factory() as session:
      row = await session.get(Plan, plan_id)
      if row is None:
        raise PlanNotFoundError(plan_id)
      return row.share_id

  async def delete_plan(self, plan_id: int) -> bool:
    async with self._session_factory() as session:
      async with session.begin():
        result = await session.execute(delete(Plan).where(Plan.id == plan_id))
      return bool(result.rowcount)

  async def list_plans(self) -> list[PlanSummaryRecord]:
    async with self._session_factory() as session:
      recipe_count = func.count(func.distinct(PlanRecipe.recipe_id))
      stmt = select(Plan, recipe_count).outerjoin(PlanRecipe, PlanRecipe.plan_id == Plan.id).group_by(Plan.id).order_by(Plan.created_at.desc(), Plan.id.desc())
      rows = (await session.execute(stmt)).all()
    return [PlanSummaryRecord(id=plan.id, name=plan.name, created_at=plan.created_at, settings=dict(plan.settings or {}), share_id=plan.share_id, recipe_count=count) for plan, count in rows]

  async def list_recipes(self, *, category: str | None = None) -> list[RecipeRecord]:
    async with self._session_factory() as session:
      stmt = select(Recipe).order_by(Recipe.title)
      if category is not None:
        stmt = stmt.where(Recipe.category == category)
      rows = (await session.execute(stmt)).scalars().all()
    return [_recipe_to_record(row) for row in rows]

  @staticmethod
  def _model_to_record(row: Plan) -> PlanRecord:
    grouped: dict[str, list[PlannedMealRecord]] = defaultdict(list)
    for entry in sorted(row.entries, key=lambda item: item.id):
      grouped[entry.day_of_week].append(PlannedMealRecord(meal_type=entry.meal_type, recipe=_recipe_to_record(entry.recipe)))
    days = [PlanDayRecord(day=day, meals=grouped[day]) for day in sorted(grouped, key=_day_sort_key)]
    return PlanRecord(id=row.id, name=row.name, created_at=row.created_at, settings=dict(row.settings or {}), shopping_list=list(row.shopping_list or []), share_id=row.share_id, days=days)
