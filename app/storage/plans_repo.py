"""Storage interfaces and records for meal plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from app.schema.plan_models import GeneratedPlan


class PlanNotFoundError(LookupError):
  """Raised when a plan id does not exist."""


@dataclass(frozen=True)
class RecipeRecord:
  id: int
  title: str
  ingredients: list[str]
  instructions: list[str]
  total_calories: float
  protein: float | None
  carbs: float | None
  fat: float | None
  category: str
  dietary_preference: str | None = None
  is_gluten_free: bool = False
  is_lactose_free: bool = False


@dataclass(frozen=True)
class PlannedMealRecord:
  meal_type: str
  recipe: RecipeRecord


@dataclass(frozen=True)
class PlanDayRecord:
  day: str
  meals: list[PlannedMealRecord]

  @property
  def total_calories(self) -> float:
    return sum(meal.recipe.total_calories for meal in self.meals)


@dataclass(frozen=True)
class PlanRecord:
  """A stored plan with its week already ordered Monday to Sunday."""

  id: int
  name: str
  created_at: datetime
  settings: dict[str, Any]
  shopping_list: list[dict[str, Any]]
  share_id: str | None
  days: list[PlanDayRecord] = field(default_factory=list)

  @property
  def recipes(self) -> list[RecipeRecord]:
    seen: dict[int, RecipeRecord] = {}
    for day in self.days:
      for meal in day.meals:
        seen.setdefault(meal.recipe.id, meal.recipe)
    return list(seen.values())


@dataclass(frozen=True)
class PlanSummaryRecord:
  """One archive row: the plan without its week layout."""

  id: int
  name: str
  created_at: datetime
  settings: dict[str, Any]
  share_id: str | None
  recipe_count: int


class PlansRepository(Protocol):
  """Repository contract for plan persistence."""

  async def save_plan(self, *, settings: dict[str, Any], plan: GeneratedPlan) -> int:
    """Persist the plan, its recipes and day/meal links atomically; return the plan id."""

  async def get_full_plan(self, plan_id: int) -> PlanRecord | None:
    """Load a plan with recipes grouped by weekday."""

  async def plan_exists(self, plan_id: int) -> bool:
    """Return True when the plan row exists."""

  async def set_share_id(self, plan_id: int, share_id: str) -> None:
    """Attach a public share id to the plan; raises PlanNotFoundError."""

  async def get_share_id(self, plan_id: int) -> str | None:
    """Return the share id of a plan; raises PlanNotFoundError."""

  async def delete_plan(self, plan_id: int) -> bool:
    """Delete a plan and everything that references it."""

  async def list_plans(self) -> list[PlanSummaryRecord]:
    """Return every stored plan, newest first."""

  async def list_recipes(self, *, category: str | None = None) -> list[RecipeRecord]:
    """Return stored recipes ordered by title, optionally of one meal category."""
