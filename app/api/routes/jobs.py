import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.api.models import JobCreateResponse, ShareJobRequest, ShareJobStatusResponse
from app.config import Settings, get_settings
from app.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.jobs")


@router.post("/share", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_share_job(  # noqa: B008
  request: ShareJobRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> JobCreateResponse:
  """Start preparing the public share document of a plan."""
  return await job_service.create_share_job(request, settings, background_tasks)


@router.get("/{job_id}", response_model=ShareJobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> ShareJobStatusResponse:
  """Fetch the status and result of a background job."""
  return await job_service.get_job_status(job_id, settings)
