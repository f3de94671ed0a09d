from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, StrictInt, StrictStr, field_validator

from app.jobs.models import JobStatus
from app.schema.plan_models import CamelModel, PlanSettings, ShoppingListCategory

MAX_PREVIOUS_TITLES = 200


class GeneratePlanJobRequest(CamelModel):
  """Request payload for starting a plan generation job."""

  model_config = ConfigDict(extra="forbid")

  settings: PlanSettings = Field(description="Preferences that drive the weekly plan.")
  previous_recipe_titles: list[StrictStr] = Field(default_factory=list, max_length=MAX_PREVIOUS_TITLES, description="Titles from earlier plans that the model should avoid repeating.")

  @field_validator("previous_recipe_titles")
  @classmethod
  def _clean_titles(cls, value: list[str]) -> list[str]:
    cleaned = [title.strip() for title in value if title.strip()]
    return list(dict.fromkeys(cleaned))


class ShareJobRequest(CamelModel):
  """Request payload for preparing a public share document."""

  plan_id: StrictInt = Field(ge=1)


class JobCreateResponse(CamelModel):
  """Response returned when a job is accepted."""

  job_id: str


class PlanJobResult(CamelModel):
  plan_id: int


class PlanJobStatusResponse(CamelModel):
  """Status of a plan generation job as seen by the polling client."""

  status: JobStatus
  phase: str | None = None
  progress_text: str | None = None
  result: PlanJobResult | None = None
  error: str | None = None


class ShareJobStatusResponse(CamelModel):
  """Status of a job in the generic job shape used by the share flow."""

  status: JobStatus
  progress_text: str | None = None
  result_json: dict[str, Any] | None = None
  error_message: str | None = None


class RecipeResponse(CamelModel):
  id: int
  title: str
  ingredients: list[str]
  instructions: list[str]
  total_calories: float
  protein: float | None = None
  carbs: float | None = None
  fat: float | None = None
  category: str


class PlannedMealResponse(CamelModel):
  meal_type: str
  recipe_id: int


class PlanDayResponse(CamelModel):
  day: str
  total_calories: float
  meals: list[PlannedMealResponse]


class PlanResponse(CamelModel):
  """A stored plan with its recipes and weekly layout."""

  id: int
  name: str
  created_at: str
  settings: dict[str, Any]
  share_id: str | None = None
  weekly_plan: list[PlanDayResponse]
  recipes: list[RecipeResponse]
  shopping_list: list[ShoppingListCategory]


class PlanSummaryResponse(CamelModel):
  """One entry of the plan archive."""

  id: int
  name: str
  created_at: str
  settings: dict[str, Any]
  share_id: str | None = None
  recipe_count: int


class CatalogRecipeResponse(RecipeResponse):
  dietary_preference: str | None = None
  is_gluten_free: bool = False
  is_lactose_free: bool = False


class ShareLinkResponse(CamelModel):
  share_id: str
  share_url: str


class HealthResponse(CamelModel):
  status: str
