from __future__ import annotations

from dataclasses import replace
from unittest.mock import AsyncMock, patch

import pytest

from app.config import Settings, get_settings
from app.jobs.models import PlanGenerationResult, SharePreparationResult
from app.main import app
from app.schema.plan_models import GeneratedPlan
from app.storage.postgres_jobs_repo import PostgresJobsRepository
from app.storage.postgres_plans_repo import PostgresPlansRepository


@pytest.mark.anyio
async def test_generate_plan_job_returns_202_with_pending_job(db, async_client, plan_settings_json: dict) -> None:
  response = await async_client.post("/api/generate-plan-job", json={"settings": plan_settings_json, "previousRecipeTitles": [" Linsen-Curry ", "Linsen-Curry", ""]})

  assert response.status_code == 202
  job_id = response.json()["jobId"]
  record = await PostgresJobsRepository().get_job(job_id)
  assert record is not None
  assert record.status == "pending"
  assert record.payload.previous_recipe_titles == ["Linsen-Curry"]
  assert record.payload.settings["persons"] == 2


@pytest.mark.anyio
@pytest.mark.parametrize(
  "body",
  [
    {},
    {"settings": {"persons": 0, "kcal": 2000}},
    {"settings": {"persons": 2, "kcal": "2000"}},
    {"settings": {"persons": 2, "kcal": 2000, "includedMeals": ["brunch"]}},
    {"settings": {"persons": 2, "kcal": 2000}, "unexpected": True},
  ],
)
async def test_generate_plan_job_rejects_invalid_settings(db, async_client, body: dict) -> None:
  response = await async_client.post("/api/generate-plan-job", json=body)

  assert response.status_code == 422
  payload = response.json()
  assert isinstance(payload["detail"], list)
  assert payload["requestId"]


@pytest.mark.anyio
async def test_plan_job_status_shape(db, async_client, plan_settings_json: dict) -> None:
  response = await async_client.post("/api/generate-plan-job", json={"settings": plan_settings_json})
  job_id = response.json()["jobId"]

  pending = await async_client.get(f"/api/job-status/{job_id}")
  assert pending.status_code == 200
  assert pending.json() == {"status": "pending", "phase": "queued", "progressText": None, "result": None, "error": None}

  repo = PostgresJobsRepository()
  await repo.claim_job(job_id, phase="starting")
  await repo.set_status(job_id, "complete", phase="done", progress_text="Fertig!", result=PlanGenerationResult(plan_id=5))

  done = await async_client.get(f"/api/job-status/{job_id}")
  assert done.json() == {"status": "complete", "phase": "done", "progressText": "Fertig!", "result": {"planId": 5}, "error": None}


@pytest.mark.anyio
async def test_unknown_job_is_404_on_both_status_endpoints(db, async_client) -> None:
  for path in ("/api/job-status/does-not-exist", "/api/jobs/does-not-exist"):
    response = await async_client.get(path, headers={"x-request-id": "req-123"})
    assert response.status_code == 404
    assert response.json() == {"detail": "Job nicht gefunden.", "requestId": "req-123"}
    assert response.headers["x-request-id"] == "req-123"


@pytest.mark.anyio
async def test_share_job_for_unknown_plan_creates_no_job(db, async_client) -> None:
  with patch("app.services.jobs._get_jobs_repo") as get_jobs_repo:
    response = await async_client.post("/api/jobs/share", json={"planId": 4242})

  assert response.status_code == 404
  assert response.json()["detail"] == "Plan nicht gefunden."
  get_jobs_repo.assert_not_called()


@pytest.mark.anyio
async def test_share_job_lifecycle_in_generic_shape(db, async_client, plan_json: dict) -> None:
  plan_id = await PostgresPlansRepository().save_plan(settings={"persons": 2}, plan=GeneratedPlan.model_validate(plan_json))

  response = await async_client.post("/api/jobs/share", json={"planId": plan_id})
  assert response.status_code == 202
  job_id = response.json()["jobId"]

  repo = PostgresJobsRepository()
  record = await repo.get_job(job_id)
  assert record is not None
  assert record.related_plan_id == plan_id

  await repo.claim_job(job_id, phase="loading_plan", progress_text="Lade Plandaten...")
  running = await async_client.get(f"/api/jobs/{job_id}")
  assert running.json() == {"status": "in_progress", "progressText": "Lade Plandaten...", "resultJson": None, "errorMessage": None}

  await repo.set_status(job_id, "complete", phase="done", progress_text="Fertig!", result=SharePreparationResult(share_id="ab12cd34ef56ab78", share_url="/shares/ab12cd34ef56ab78.html"))
  done = await async_client.get(f"/api/jobs/{job_id}")
  assert done.json() == {"status": "complete", "progressText": "Fertig!", "resultJson": {"shareId": "ab12cd34ef56ab78", "shareUrl": "/shares/ab12cd34ef56ab78.html"}, "errorMessage": None}


@pytest.mark.anyio
@pytest.mark.parametrize("plan_id", [0, -3, "3", 1.5])
async def test_share_job_rejects_invalid_plan_ids(db, async_client, plan_id) -> None:
  response = await async_client.post("/api/jobs/share", json={"planId": plan_id})
  assert response.status_code == 422


@pytest.mark.anyio
async def test_created_job_is_dispatched_after_response(db, async_client, settings: Settings, plan_settings_json: dict) -> None:
  enqueuer = AsyncMock()
  app.dependency_overrides[get_settings] = lambda: replace(settings, jobs_auto_process=True)
  with patch("app.services.jobs.get_task_enqueuer", return_value=enqueuer):
    response = await async_client.post("/api/generate-plan-job", json={"settings": plan_settings_json})

  assert response.status_code == 202
  enqueuer.enqueue.assert_awaited_once_with(response.json()["jobId"])


@pytest.mark.anyio
async def test_enqueue_failure_marks_pending_job_failed(db, async_client, settings: Settings, plan_settings_json: dict) -> None:
  enqueuer = AsyncMock()
  enqueuer.enqueue.side_effect = RuntimeError("queue unavailable")
  app.dependency_overrides[get_settings] = lambda: replace(settings, jobs_auto_process=True)
  with patch("app.services.jobs.get_task_enqueuer", return_value=enqueuer):
    response = await async_client.post("/api/generate-plan-job", json={"settings": plan_settings_json})

  assert response.status_code == 202
  status = await async_client.get(f"/api/job-status/{response.json()['jobId']}")
  assert status.json()["status"] == "error"
  assert status.json()["error"] == "Auftrag konnte nicht eingeplant werden."


@pytest.mark.anyio
async def test_terminal_status_reads_are_idempotent(db, async_client, plan_settings_json: dict) -> None:
  job_id = (await async_client.post("/api/generate-plan-job", json={"settings": plan_settings_json})).json()["jobId"]
  repo = PostgresJobsRepository()
  await repo.claim_job(job_id, phase="starting")
  await repo.set_status(job_id, "error", phase="failed", error_message="Plan konnte nicht erstellt werden.")
  before = await repo.get_job(job_id)

  plan_reads = [(await async_client.get(f"/api/job-status/{job_id}")).json() for _ in range(3)]
  generic_reads = [(await async_client.get(f"/api/jobs/{job_id}")).json() for _ in range(3)]

  assert plan_reads == [plan_reads[0]] * 3
  assert plan_reads[0]["error"] == "Plan konnte nicht erstellt werden."
  assert plan_reads[0]["result"] is None
  assert generic_reads == [generic_reads[0]] * 3
  assert generic_reads[0]["errorMessage"] == "Plan konnte nicht erstellt werden."
  assert await repo.get_job(job_id) == before
