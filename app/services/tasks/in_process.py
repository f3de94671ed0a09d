from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)

JobRunner = Callable[[str], Awaitable[object]]

# Strong references keep fire-and-forget tasks alive until they finish.
_RUNNING_TASKS: set[asyncio.Task[object]] = set()


def running_task_count() -> int:
  return len(_RUNNING_TASKS)


async def drain_running_tasks(timeout: float | None = None) -> None:
  """Wait for every in-flight job task; used at shutdown and in tests."""
  if not _RUNNING_TASKS:
    return
  _, still_running = await asyncio.wait(list(_RUNNING_TASKS), timeout=timeout)
  if still_running:
    logger.warning("%d job task(s) still running after drain timeout", len(still_running))


class InProcessEnqueuer(TaskEnqueuer):
  """Runs jobs as independent asyncio tasks inside the API process."""

  def __init__(self, runner: JobRunner) -> None:
    self._runner = runner

  async def enqueue(self, job_id: str) -> None:
    task = asyncio.create_task(self._run(job_id), name=f"job-{job_id}")
    _RUNNING_TASKS.add(task)
    task.add_done_callback(_RUNNING_TASKS.discard)
    logger.info("Spawned in-process task for job %s", job_id)

  async def _run(self, job_id: str) -> object:
    try:
      return await self._runner(job_id)
    except Exception:  # noqa: BLE001
      # The runner records job failures itself; this only guards the task from dying silently.
      logger.error("In-process job task crashed for job %s", job_id, exc_info=True)
      return None
