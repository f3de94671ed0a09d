from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.database import get_session_factory
from app.jobs.models import SharePreparationPayload
from app.schema.plan_models import GeneratedPlan
from app.schema.plans import Plan, PlanRecipe, Recipe
from app.storage.plans_repo import PlanNotFoundError
from app.storage.postgres_jobs_repo import PostgresJobsRepository
from app.storage.postgres_plans_repo import PostgresPlansRepository


async def _count(model) -> int:
  session_factory = get_session_factory()
  async with session_factory() as session:
    return await session.scalar(select(func.count()).select_from(model))


@pytest.mark.anyio
async def test_saved_plan_reads_back_in_week_order(db, plan_json: dict) -> None:
  repo = PostgresPlansRepository()
  plan_json["weeklyPlan"].reverse()
  plan_id = await repo.save_plan(settings={"persons": 2, "kcal": 2000}, plan=GeneratedPlan.model_validate(plan_json))

  stored = await repo.get_full_plan(plan_id)

  assert stored is not None
  assert [day.day for day in stored.days] == ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"]
  assert [meal.meal_type for meal in stored.days[0].meals] == ["breakfast", "dinner"]
  assert stored.days[0].total_calories == 1070
  assert {recipe.title for recipe in stored.recipes} == {"Haferbrei mit Beeren", "Linsen-Curry"}
  assert stored.shopping_list == [{"category": "Trockenwaren", "items": ["560 g Haferflocken", "1,4 kg rote Linsen"]}]
  assert stored.share_id is None
  assert await _count(PlanRecipe) == 14


@pytest.mark.anyio
async def test_recipes_are_reused_by_title(db, plan_json: dict) -> None:
  repo = PostgresPlansRepository()
  plan = GeneratedPlan.model_validate(plan_json)
  first = await repo.save_plan(settings={"persons": 2}, plan=plan)
  second = await repo.save_plan(settings={"persons": 4}, plan=plan)

  assert first != second
  assert await _count(Recipe) == 2


@pytest.mark.anyio
async def test_failed_link_rolls_back_the_whole_plan(db, plan_json: dict) -> None:
  repo = PostgresPlansRepository()
  calls = 0
  original = PostgresPlansRepository._link_recipe

  async def _failing_link(self, session, **kwargs):
    nonlocal calls
    calls += 1
    if calls == 5:
      raise IntegrityError("INSERT INTO plan_recipes", {}, Exception("simulated"))
    await original(self, session, **kwargs)

  with patch.object(PostgresPlansRepository, "_link_recipe", _failing_link):
    with pytest.raises(IntegrityError):
      await repo.save_plan(settings={"persons": 2}, plan=GeneratedPlan.model_validate(plan_json))

  assert await _count(Plan) == 0
  assert await _count(Recipe) == 0
  assert await _count(PlanRecipe) == 0


@pytest.mark.anyio
async def test_share_id_round_trip(db, plan_json: dict) -> None:
  repo = PostgresPlansRepository()
  plan_id = await repo.save_plan(settings={"persons": 2}, plan=GeneratedPlan.model_validate(plan_json))

  assert await repo.plan_exists(plan_id)
  assert not await repo.plan_exists(plan_id + 100)
  await repo.set_share_id(plan_id, "ab12cd34ef56ab78")
  assert await repo.get_share_id(plan_id) == "ab12cd34ef56ab78"
  with pytest.raises(PlanNotFoundError):
    await repo.set_share_id(plan_id + 100, "0000000000000000")
  with pytest.raises(PlanNotFoundError):
    await repo.get_share_id(plan_id + 100)


@pytest.mark.anyio
async def test_deleting_a_plan_removes_links_and_related_jobs(db, plan_json: dict) -> None:
  plans = PostgresPlansRepository()
  jobs = PostgresJobsRepository()
  plan_id = await plans.save_plan(settings={"persons": 2}, plan=GeneratedPlan.model_validate(plan_json))
  job = await jobs.create_job(job_type="share_preparation", payload=SharePreparationPayload(plan_id=plan_id), related_plan_id=plan_id)

  assert await plans.delete_plan(plan_id)

  assert await plans.get_full_plan(plan_id) is None
  assert await jobs.get_job(job.job_id) is None
  assert await _count(PlanRecipe) == 0
  assert await _count(Recipe) == 2
  assert not await plans.delete_plan(plan_id)


@pytest.mark.anyio
async def test_save_links_recipe_committed_by_another_writer(db, plan_json: dict) -> None:
  session_factory = get_session_factory()
  async with session_factory() as session:
    async with session.begin():
      existing = Recipe(title="Linsen-Curry", ingredients=["Linsen"], instructions=["Kochen."], total_calories=999.0, category="dinner")
      session.add(existing)
    existing_id = existing.id

  repo = PostgresPlansRepository()
  plan_id = await repo.save_plan(settings={"persons": 2}, plan=GeneratedPlan.model_validate(plan_json))

  stored = await repo.get_full_plan(plan_id)
  assert stored is not None
  curry = next(recipe for recipe in stored.recipes if recipe.title == "Linsen-Curry")
  assert curry.id == existing_id
  assert curry.total_calories == 999.0
  assert await _count(Recipe) == 2


@pytest.mark.anyio
async def test_archive_lists_newest_plan_first(db, plan_json: dict) -> None:
  repo = PostgresPlansRepository()
  assert await repo.list_plans() == []

  older = await repo.save_plan(settings={"persons": 2}, plan=GeneratedPlan.model_validate(plan_json))
  plan_json["name"] = "Zweite Woche"
  newer = await repo.save_plan(settings={"persons": 3}, plan=GeneratedPlan.model_validate(plan_json))
  await repo.set_share_id(older, "ab12cd34ef56ab78")

  summaries = await repo.list_plans()

  assert [summary.id for summary in summaries] == [newer, older]
  assert summaries[0].name == "Zweite Woche"
  assert summaries[0].settings == {"persons": 3}
  assert summaries[1].share_id == "ab12cd34ef56ab78"
  assert [summary.recipe_count for summary in summaries] == [2, 2]


@pytest.mark.anyio
async def test_recipe_catalog_is_sorted_and_filterable(db, plan_json: dict) -> None:
  repo = PostgresPlansRepository()
  await repo.save_plan(settings={"persons": 2, "dietaryPreference": "vegetarian", "isGlutenFree": True}, plan=GeneratedPlan.model_validate(plan_json))

  recipes = await repo.list_recipes()
  assert [recipe.title for recipe in recipes] == ["Haferbrei mit Beeren", "Linsen-Curry"]
  assert recipes[0].dietary_preference == "vegetarian"
  assert recipes[0].is_gluten_free is True

  dinners = await repo.list_recipes(category="dinner")
  assert [recipe.title for recipe in dinners] == ["Linsen-Curry"]
  assert await repo.list_recipes(category="snack") == []
