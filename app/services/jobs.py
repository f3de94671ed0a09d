import logging

from fastapi import BackgroundTasks, HTTPException, status

from app.ai.agents import PlannerAgent, ShoppingListAgent
from app.ai.key_rotation import KeyRotationExecutor, credentials_from_keys
from app.ai.providers import GeminiProvider
from app.api.models import GeneratePlanJobRequest, JobCreateResponse, PlanJobResult, PlanJobStatusResponse, ShareJobRequest, ShareJobStatusResponse
from app.config import Settings
from app.jobs.models import JobNotFoundError, JobRecord, JobTransitionError, PlanGenerationPayload, PlanGenerationResult, SharePreparationPayload, result_fields
from app.jobs.progress import FAILED_PHASE
from app.jobs.worker import JobProcessor
from app.services.tasks.factory import get_task_enqueuer
from app.storage.factory import _get_jobs_repo, _get_plans_repo

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job nicht gefunden."
_PLAN_NOT_FOUND_MSG = "Plan nicht gefunden."
_ENQUEUE_FAILED_MSG = "Auftrag konnte nicht eingeplant werden."
_SYSTEM_ERROR_MSG = "Systemfehler bei der Verarbeitung des Auftrags."


def _plan_status_from_record(record: JobRecord) -> PlanJobStatusResponse:
  """Convert a persisted job record into the plan polling payload."""
  result = None
  if isinstance(record.result, PlanGenerationResult):
    result = PlanJobResult(plan_id=record.result.plan_id)
  return PlanJobStatusResponse(status=record.status, phase=record.phase, progress_text=record.progress_text, result=result, error=record.error_message)


def _generic_status_from_record(record: JobRecord) -> ShareJobStatusResponse:
  return ShareJobStatusResponse(status=record.status, progress_text=record.progress_text, result_json=result_fields(record.result), error_message=record.error_message)


async def create_plan_job(request: GeneratePlanJobRequest, settings: Settings, background_tasks: BackgroundTasks) -> JobCreateResponse:
  """Create a plan generation job and hand it to the task enqueuer."""
  repo = _get_jobs_repo(settings)
  payload = PlanGenerationPayload(settings=request.settings.model_dump(by_alias=True), previous_recipe_titles=list(request.previous_recipe_titles))
  record = await repo.create_job(job_type="plan_generation", payload=payload)
  logger.info("Created plan generation job %s", record.job_id)

  trigger_job_processing(background_tasks, record.job_id, settings)
  return JobCreateResponse(job_id=record.job_id)


async def create_share_job(request: ShareJobRequest, settings: Settings, background_tasks: BackgroundTasks) -> JobCreateResponse:
  """Create a share preparation job for an existing plan."""
  plans_repo = _get_plans_repo(settings)
  # Reject unknown plans up front so no job row is ever created for them.
  if not await plans_repo.plan_exists(request.plan_id):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PLAN_NOT_FOUND_MSG)

  repo = _get_jobs_repo(settings)
  record = await repo.create_job(job_type="share_preparation", payload=SharePreparationPayload(plan_id=request.plan_id), related_plan_id=request.plan_id)
  logger.info("Created share preparation job %s for plan %s", record.job_id, request.plan_id)

  trigger_job_processing(background_tasks, record.job_id, settings)
  return JobCreateResponse(job_id=record.job_id)


async def _load_job(job_id: str, settings: Settings) -> JobRecord:
  record = await _get_jobs_repo(settings).get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return record


async def get_plan_job_status(job_id: str, settings: Settings) -> PlanJobStatusResponse:
  """Fetch the status of a plan generation job."""
  return _plan_status_from_record(await _load_job(job_id, settings))


async def get_job_status(job_id: str, settings: Settings) -> ShareJobStatusResponse:
  """Fetch the status and result of any job in the generic shape."""
  return _generic_status_from_record(await _load_job(job_id, settings))


def _build_processor(settings: Settings) -> JobProcessor:
  """Wire the worker with repositories, agents and the key rotation executor."""
  provider = GeminiProvider()
  executor = KeyRotationExecutor(credentials_from_keys(settings.gemini_api_keys))
  return JobProcessor(
    jobs_repo=_get_jobs_repo(settings),
    plans_repo=_get_plans_repo(settings),
    planner=PlannerAgent(provider=provider, model_name=settings.plan_model, executor=executor),
    shopping_list_agent=ShoppingListAgent(provider=provider, model_name=settings.plan_model, executor=executor),
    shares_dir=settings.shares_dir,
    share_url_prefix=settings.share_url_prefix,
  )


async def process_job_sync(job_id: str, settings: Settings) -> JobRecord | None:
  """Run a pending job to completion in the current task."""
  try:
    processor = _build_processor(settings)
    return await processor.run(job_id)
  except Exception as exc:  # noqa: BLE001
    logger.error("Job processing failed for job %s: %s", job_id, exc, exc_info=True)
    try:
      await _get_jobs_repo(settings).set_status(job_id, "error", phase=FAILED_PHASE, error_message=_SYSTEM_ERROR_MSG)
    except (JobNotFoundError, JobTransitionError):
      logger.warning("Job %s could not be marked as failed; it is gone or already terminal", job_id)
    except Exception as update_exc:  # noqa: BLE001
      logger.error("Failed to update job status after processing error: %s", update_exc)
    return None


async def _fail_pending_job(job_id: str, settings: Settings, message: str) -> None:
  """Mark a job as failed only if no worker has picked it up yet."""
  repo = _get_jobs_repo(settings)
  # Claiming first keeps a worker that races this path from running the same job.
  claimed = await repo.claim_job(job_id, phase=FAILED_PHASE)
  if claimed is None:
    return
  await repo.set_status(job_id, "error", phase=FAILED_PHASE, error_message=message)


def trigger_job_processing(background_tasks: BackgroundTasks, job_id: str, settings: Settings) -> None:
  """Schedule dispatch via the configured task enqueuer after the response is sent."""

  if not settings.jobs_auto_process:
    return

  enqueuer = get_task_enqueuer(settings)

  async def _dispatch() -> None:
    try:
      await enqueuer.enqueue(job_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to enqueue job %s: %s", job_id, exc, exc_info=True)
      # Mark the job as failed on enqueue errors so pending jobs do not hang forever.
      await _fail_pending_job(job_id, settings, _ENQUEUE_FAILED_MSG)

  background_tasks.add_task(_dispatch)
