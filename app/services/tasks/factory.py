from __future__ import annotations

from app.config import Settings
from app.services.tasks.in_process import InProcessEnqueuer
from app.services.tasks.interface import TaskEnqueuer


def get_task_enqueuer(settings: Settings) -> TaskEnqueuer:
  """Factory to get the configured task enqueuer."""
  if settings.task_service_provider == "gcp":
    from app.services.tasks.gcp import CloudTasksEnqueuer

    return CloudTasksEnqueuer(settings)

  if settings.task_service_provider == "local-http":
    from app.services.tasks.local import LocalHttpEnqueuer

    return LocalHttpEnqueuer(settings)

  from app.services.jobs import process_job_sync

  async def _runner(job_id: str) -> object:
    return await process_job_sync(job_id, settings)

  return InProcessEnqueuer(_runner)
