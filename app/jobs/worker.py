"""Background processor for plan generation and share preparation jobs."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from app.ai.agents.planner import PlannerAgent, PlanRequest
from app.ai.agents.shopping_list import ShoppingListAgent, ShoppingListRequest
from app.ai.errors import NoCredentialsError
from app.jobs.dispatch import JobProcessorHandler, JobProcessorRegistry
from app.jobs.models import JobNotFoundError, JobRecord, JobTransitionError, JobType, PlanGenerationPayload, PlanGenerationResult, SharePreparationPayload, SharePreparationResult
from app.jobs.progress import PLAN_GENERATING, PLAN_SAVING, PLAN_SHOPPING_LIST, SHARE_ASSIGNING, SHARE_LOADING, SHARE_RENDERING, JobProgressTracker
from app.schema.plan_models import PlanSettings
from app.schema.validate_plan import validate_plan
from app.services.shares import build_share_url, render_share_document, write_share_document
from app.storage.jobs_repo import JobsRepository
from app.storage.plans_repo import PlanNotFoundError, PlansRepository
from app.utils.ids import generate_share_id

logger = logging.getLogger(__name__)

_FAILURE_PREFIX: dict[str, str] = {"plan_generation": "Plan konnte nicht erstellt werden", "share_preparation": "Fehler beim Teilen"}
_MAX_ERROR_DETAIL_CHARS = 500


class JobFailure(Exception):
  """Terminal job failure whose message is stored on the job as-is."""


class PlanValidationError(JobFailure):
  """Generated plan is structurally incomplete; raised before anything is persisted."""

  def __init__(self, errors: list[str]) -> None:
    self.errors = list(errors)
    summary = "; ".join(self.errors[:3])
    more = f" (+{len(self.errors) - 3} weitere)" if len(self.errors) > 3 else ""
    super().__init__(f"Die KI-Antwort ist unvollständig: {summary}{more}")


def failure_message(job_type: str, exc: BaseException) -> str:
  """Turn an exception into the plain-text message stored on a failed job."""
  if isinstance(exc, JobFailure):
    return str(exc)
  if isinstance(exc, NoCredentialsError):
    return "Kein API-Schlüssel für die Plan-Generierung konfiguriert."
  detail = (str(exc) or type(exc).__name__).strip()
  if len(detail) > _MAX_ERROR_DETAIL_CHARS:
    detail = detail[: _MAX_ERROR_DETAIL_CHARS - 3] + "..."
  prefix = _FAILURE_PREFIX.get(job_type, "Auftrag fehlgeschlagen")
  return f"{prefix}: {detail}"


class _MethodHandler:
  """Adapter that exposes worker coroutine methods as registry handlers."""

  def __init__(self, method: Callable[[JobRecord], Awaitable[JobRecord]]) -> None:
    self._method = method

  async def process(self, job: JobRecord) -> JobRecord:
    return await self._method(job)


class JobProcessor:
  """Runs one job id to a terminal state."""

  def __init__(self, *, jobs_repo: JobsRepository, plans_repo: PlansRepository, planner: PlannerAgent, shopping_list_agent: ShoppingListAgent, shares_dir: str | Path, share_url_prefix: str, registry: JobProcessorRegistry | None = None) -> None:
    self._jobs_repo = jobs_repo
    self._plans_repo = plans_repo
    self._planner = planner
    self._shopping_list_agent = shopping_list_agent
    self._shares_dir = Path(shares_dir)
    self._share_url_prefix = share_url_prefix
    self._registry = registry or self._build_default_registry()

  def _build_default_registry(self) -> JobProcessorRegistry:
    handlers: dict[str, JobProcessorHandler] = {
      "plan_generation": _MethodHandler(self._process_plan_generation),
      "share_preparation": _MethodHandler(self._process_share_preparation),
    }
    return JobProcessorRegistry(handlers)

  async def run(self, job_id: str) -> JobRecord | None:
    """Claim and execute a pending job; anything else is left untouched."""
    claimed = await self._jobs_repo.claim_job(job_id, phase="starting")
    if claimed is None:
      existing = await self._jobs_repo.get_job(job_id)
      if existing is None:
        logger.warning("Job %s not found; nothing to process", job_id)
      else:
        logger.info("Job %s is %s; skipping", job_id, existing.status)
      return existing

    logger.info("Processing job %s type=%s", job_id, claimed.job_type)
    try:
      handler = self._registry.resolve(claimed.job_type)
      record = await handler.process(claimed)
    except Exception as exc:  # noqa: BLE001
      logger.error("Job %s failed: %s", job_id, exc, exc_info=not isinstance(exc, JobFailure))
      return await self._mark_failed(job_id, claimed.job_type, exc)

    logger.info("Job %s finished with status %s", job_id, record.status)
    return record

  async def _mark_failed(self, job_id: str, job_type: JobType, exc: BaseException) -> JobRecord | None:
    try:
      return await JobProgressTracker(job_id=job_id, jobs_repo=self._jobs_repo).fail(failure_message(job_type, exc))
    except JobTransitionError:
      logger.warning("Job %s was already terminal when recording failure", job_id)
      return await self._jobs_repo.get_job(job_id)
    except JobNotFoundError:
      # The related plan was deleted mid-run and took the job row with it.
      logger.warning("Job %s disappeared before its failure could be recorded", job_id)
      return None

  async def _process_plan_generation(self, job: JobRecord) -> JobRecord:
    payload = job.payload
    if not isinstance(payload, PlanGenerationPayload):
      raise JobFailure("Ungültige Auftragsdaten für die Plan-Generierung.")

    tracker = JobProgressTracker(job_id=job.job_id, jobs_repo=self._jobs_repo)
    await tracker.enter(PLAN_GENERATING)
    settings = PlanSettings.model_validate(payload.settings)
    raw_plan = await self._planner.run(PlanRequest(settings=settings, previous_recipe_titles=list(payload.previous_recipe_titles)))

    ok, errors, plan = validate_plan(raw_plan)
    if not ok or plan is None:
      raise PlanValidationError(errors)

    if not plan.shopping_list:
      await tracker.enter(PLAN_SHOPPING_LIST)
      shopping_list = await self._shopping_list_agent.run(ShoppingListRequest(persons=settings.persons, recipe_titles=[recipe.title for recipe in plan.recipes]))
      plan = plan.model_copy(update={"shopping_list": shopping_list})

    await tracker.enter(PLAN_SAVING)
    try:
      plan_id = await self._plans_repo.save_plan(settings=settings.model_dump(by_alias=True), plan=plan)
    except SQLAlchemyError as exc:
      raise JobFailure("Plan konnte nicht gespeichert werden.") from exc

    return await tracker.complete(PlanGenerationResult(plan_id=plan_id))

  async def _process_share_preparation(self, job: JobRecord) -> JobRecord:
    payload = job.payload
    if not isinstance(payload, SharePreparationPayload):
      raise JobFailure("Ungültige Auftragsdaten für die Freigabe.")
    plan_id = job.related_plan_id if job.related_plan_id is not None else payload.plan_id

    tracker = JobProgressTracker(job_id=job.job_id, jobs_repo=self._jobs_repo)
    await tracker.enter(SHARE_LOADING)
    plan = await self._plans_repo.get_full_plan(plan_id)
    if plan is None:
      raise JobFailure("Plan nicht gefunden.")

    await tracker.enter(SHARE_RENDERING)
    share_id = generate_share_id()
    document = render_share_document(plan)
    await write_share_document(self._shares_dir, share_id, document)

    await tracker.enter(SHARE_ASSIGNING)
    try:
      await self._plans_repo.set_share_id(plan_id, share_id)
    except PlanNotFoundError as exc:
      raise JobFailure("Plan nicht gefunden.") from exc

    return await tracker.complete(SharePreparationResult(share_id=share_id, share_url=build_share_url(self._share_url_prefix, share_id)))
