"""Job phase tracking on top of the jobs repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.jobs.models import JobRecord, JobResult
from app.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobStep:
  """A machine-readable phase paired with the text shown to users."""

  phase: str
  text: str


PLAN_GENERATING = JobStep("generating_plan", "Schritt 1/2: Plan und Rezepte werden generiert...")
PLAN_SHOPPING_LIST = JobStep("generating_shopping_list", "Schritt 1/2: Einkaufsliste wird erstellt...")
PLAN_SAVING = JobStep("saving_plan", "Schritt 2/2: Plan wird gespeichert...")

SHARE_LOADING = JobStep("loading_plan", "Lade Plandaten...")
SHARE_RENDERING = JobStep("rendering_share", "Generiere dynamische HTML-Datei...")
SHARE_ASSIGNING = JobStep("assigning_share_id", "Speichere Freigabe-Link...")

DONE = JobStep("done", "Fertig!")
FAILED_PHASE = "failed"


class JobProgressTracker:
  """Write phase transitions for one job; every write is a full status overwrite."""

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository) -> None:
    self._job_id = job_id
    self._jobs_repo = jobs_repo
    self._current: JobStep | None = None

  @property
  def current_step(self) -> JobStep | None:
    return self._current

  async def enter(self, step: JobStep) -> JobRecord:
    """Move the job into `step` while it is still running."""
    self._current = step
    logger.info("Job %s entering phase %s", self._job_id, step.phase)
    return await self._jobs_repo.set_status(self._job_id, "in_progress", phase=step.phase, progress_text=step.text)

  async def complete(self, result: JobResult) -> JobRecord:
    self._current = DONE
    return await self._jobs_repo.set_status(self._job_id, "complete", phase=DONE.phase, progress_text=DONE.text, result=result)

  async def fail(self, message: str) -> JobRecord:
    failed_in = self._current.phase if self._current else None
    logger.warning("Job %s failed in phase %s: %s", self._job_id, failed_in, message)
    return await self._jobs_repo.set_status(self._job_id, "error", phase=FAILED_PHASE, progress_text=None, error_message=message)
