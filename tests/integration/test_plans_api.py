from __future__ import annotations

import pytest

from app.jobs.models import SharePreparationPayload
from app.schema.plan_models import GeneratedPlan
from app.storage.postgres_jobs_repo import PostgresJobsRepository
from app.storage.postgres_plans_repo import PostgresPlansRepository


async def _save_plan(plan_json: dict) -> int:
  return await PostgresPlansRepository().save_plan(settings={"persons": 2, "kcal": 2000, "dietaryPreference": "vegetarian"}, plan=GeneratedPlan.model_validate(plan_json))


@pytest.mark.anyio
async def test_get_plan_returns_week_recipes_and_shopping_list(db, async_client, plan_json: dict) -> None:
  plan_id = await _save_plan(plan_json)

  response = await async_client.get(f"/api/plans/{plan_id}")

  assert response.status_code == 200
  body = response.json()
  assert body["id"] == plan_id
  assert body["name"] == "Ausgewogene Woche"
  assert body["settings"]["dietaryPreference"] == "vegetarian"
  assert body["shareId"] is None
  assert [day["day"] for day in body["weeklyPlan"]][:2] == ["Montag", "Dienstag"]
  monday = body["weeklyPlan"][0]
  assert monday["totalCalories"] == 1070
  recipe_ids = {recipe["id"] for recipe in body["recipes"]}
  assert {meal["recipeId"] for meal in monday["meals"]} == recipe_ids
  assert body["shoppingList"][0]["category"] == "Trockenwaren"


@pytest.mark.anyio
async def test_missing_plan_is_404(db, async_client) -> None:
  response = await async_client.get("/api/plans/999")
  assert response.status_code == 404
  assert response.json()["detail"] == "Plan nicht gefunden."


@pytest.mark.anyio
async def test_delete_plan_removes_related_jobs(db, async_client, plan_json: dict) -> None:
  plan_id = await _save_plan(plan_json)
  jobs = PostgresJobsRepository()
  job = await jobs.create_job(job_type="share_preparation", payload=SharePreparationPayload(plan_id=plan_id), related_plan_id=plan_id)

  response = await async_client.delete(f"/api/plans/{plan_id}")

  assert response.status_code == 204
  assert (await async_client.get(f"/api/plans/{plan_id}")).status_code == 404
  assert (await async_client.get(f"/api/jobs/{job.job_id}")).status_code == 404
  assert (await async_client.delete(f"/api/plans/{plan_id}")).status_code == 404


@pytest.mark.anyio
async def test_share_link_requires_a_shared_plan(db, async_client, plan_json: dict) -> None:
  plan_id = await _save_plan(plan_json)

  unshared = await async_client.get(f"/api/share-plan/{plan_id}")
  assert unshared.status_code == 404
  assert unshared.json()["detail"] == "Plan wurde noch nicht geteilt."

  await PostgresPlansRepository().set_share_id(plan_id, "ab12cd34ef56ab78")
  shared = await async_client.get(f"/api/share-plan/{plan_id}")
  assert shared.status_code == 200
  assert shared.json() == {"shareId": "ab12cd34ef56ab78", "shareUrl": "/shares/ab12cd34ef56ab78.html"}

  missing = await async_client.get("/api/share-plan/999")
  assert missing.json()["detail"] == "Plan nicht gefunden."


@pytest.mark.anyio
async def test_health_and_security_headers(async_client) -> None:
  response = await async_client.get("/health")
  assert response.status_code == 200
  assert response.json() == {"status": "ok"}
  assert response.headers["x-content-type-options"] == "nosniff"
  assert response.headers["referrer-policy"] == "no-referrer"
  assert response.headers["x-request-id"]


@pytest.mark.anyio
async def test_archive_lists_plan_summaries_newest_first(db, async_client, plan_json: dict) -> None:
  assert (await async_client.get("/api/archive")).json() == []

  older = await _save_plan(plan_json)
  plan_json["name"] = "Zweite Woche"
  newer = await _save_plan(plan_json)

  response = await async_client.get("/api/archive")

  assert response.status_code == 200
  body = response.json()
  assert [entry["id"] for entry in body] == [newer, older]
  assert body[0]["name"] == "Zweite Woche"
  assert body[0]["recipeCount"] == 2
  assert body[0]["shareId"] is None
  assert body[0]["settings"]["dietaryPreference"] == "vegetarian"
  assert body[0]["createdAt"]
  assert "weeklyPlan" not in body[0]


@pytest.mark.anyio
async def test_recipes_can_be_browsed_by_category(db, async_client, plan_json: dict) -> None:
  await _save_plan(plan_json)

  everything = await async_client.get("/api/recipes")
  assert everything.status_code == 200
  assert [recipe["title"] for recipe in everything.json()] == ["Haferbrei mit Beeren", "Linsen-Curry"]
  assert everything.json()[1]["totalCalories"] == 650
  assert everything.json()[1]["dietaryPreference"] == "vegetarian"

  dinners = await async_client.get("/api/recipes", params={"category": "dinner"})
  assert [recipe["title"] for recipe in dinners.json()] == ["Linsen-Curry"]

  invalid = await async_client.get("/api/recipes", params={"category": "brunch"})
  assert invalid.status_code == 422
