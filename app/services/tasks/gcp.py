from __future__ import annotations

import json
import logging

from google.cloud import tasks_v2
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Enqueues tasks to Google Cloud Tasks."""

  def __init__(self, settings: Settings, client: tasks_v2.CloudTasksClient | None = None) -> None:
    self.settings = settings
    self.client = client or tasks_v2.CloudTasksClient()

  def _build_task(self, job_id: str) -> dict:
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    url = f"{self.settings.base_url.rstrip('/')}/internal/tasks/process-job"
    # The shared secret travels in a dedicated header so Cloud Run can keep Authorization for OIDC.
    headers = {"Content-Type": "application/json", "x-mealplan-task-secret": self.settings.task_secret}
    return {"http_request": {"http_method": tasks_v2.HttpMethod.POST, "url": url, "headers": headers, "body": json.dumps({"job_id": job_id}).encode()}}

  async def enqueue(self, job_id: str) -> None:
    """Enqueue a job to Cloud Tasks."""
    if not self.settings.cloud_tasks_queue_path:
      raise RuntimeError("Cloud Tasks queue path not configured (MEALPLAN_CLOUD_TASKS_QUEUE_PATH).")

    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured (MEALPLAN_BASE_URL).")

    task = self._build_task(job_id)
    parent = self.settings.cloud_tasks_queue_path
    # The client is synchronous; keep it off the event loop.
    response = await run_in_threadpool(self.client.create_task, request={"parent": parent, "task": task})
    logger.info("Enqueued task %s for job %s", response.name, job_id)
