import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.api.models import GeneratePlanJobRequest, JobCreateResponse, PlanJobStatusResponse
from app.config import Settings, get_settings
from app.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.generation")


@router.post("/generate-plan-job", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_plan_job(  # noqa: B008
  request: GeneratePlanJobRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> JobCreateResponse:
  """Start a background plan generation job."""
  return await job_service.create_plan_job(request, settings, background_tasks)


@router.get("/job-status/{job_id}", response_model=PlanJobStatusResponse)
async def get_plan_job_status(  # noqa: B008
  job_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> PlanJobStatusResponse:
  """Fetch the status of a plan generation job."""
  return await job_service.get_plan_job_status(job_id, settings)
