import logging

from fastapi import APIRouter, Depends, Response, status

from app.api.models import CatalogRecipeResponse, PlanResponse, PlanSummaryResponse, ShareLinkResponse
from app.config import Settings, get_settings
from app.schema.plan_models import MealCategory
from app.services import plans as plan_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.plans")


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(  # noqa: B008
  plan_id: int,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> PlanResponse:
  """Return a stored plan with recipes and shopping list."""
  return await plan_service.get_plan(plan_id, settings)


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(  # noqa: B008
  plan_id: int,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> Response:
  """Delete a plan together with its recipe links and jobs."""
  await plan_service.delete_plan(plan_id, settings)
  return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/share-plan/{plan_id}", response_model=ShareLinkResponse)
async def get_share_link(  # noqa: B008
  plan_id: int,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> ShareLinkResponse:
  """Return the public link of an already shared plan."""
  return await plan_service.get_share_link(plan_id, settings)


@router.get("/archive", response_model=list[PlanSummaryResponse])
async def list_archive(  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> list[PlanSummaryResponse]:
  """List stored plans, newest first."""
  return await plan_service.list_archive(settings)


@router.get("/recipes", response_model=list[CatalogRecipeResponse])
async def list_recipes(  # noqa: B008
  category: MealCategory | None = None,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> list[CatalogRecipeResponse]:
  """Browse stored recipes by title."""
  return await plan_service.list_recipes(settings, category=category)
