from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field

from app.config import Settings, get_settings
from app.services.jobs import process_job_sync

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


class TaskPayload(BaseModel):
  job_id: str = Field(min_length=1)


def require_task_secret(
  settings: Annotated[Settings, Depends(get_settings)],
  authorization: Annotated[str | None, Header()] = None,
  x_mealplan_task_secret: Annotated[str | None, Header()] = None,
) -> None:
  """Reject task calls that do not carry the shared secret."""
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  # Cloud Tasks keeps Authorization for OIDC, so the dedicated header is checked first.
  if secrets.compare_digest(x_mealplan_task_secret or "", settings.task_secret):
    return
  if secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}"):
    return
  logger.warning("Rejected task call with an invalid secret")
  raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


@router.post("/process-job", status_code=status.HTTP_202_ACCEPTED, dependencies=[Depends(require_task_secret)])
async def process_job_task(payload: TaskPayload, background_tasks: BackgroundTasks, settings: Annotated[Settings, Depends(get_settings)]) -> dict[str, str]:
  """Accept a dispatched job and run it after the response is sent."""
  logger.info("Received task for job %s", payload.job_id)
  background_tasks.add_task(process_job_sync, payload.job_id, settings)
  return {"status": "accepted", "jobId": payload.job_id}
