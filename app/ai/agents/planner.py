"""Planner agent implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from app.ai.agents.base import BaseAgent
from app.ai.agents.prompts import plan_response_schema, render_plan_prompt, render_plan_system_instruction
from app.schema.plan_models import PlanSettings


@dataclass(frozen=True)
class PlanRequest:
  settings: PlanSettings
  previous_recipe_titles: list[str] = field(default_factory=list)


def _repair_plan_json(plan_json: dict[str, Any]) -> dict[str, Any]:
  """Normalize common shape slips: single strings where lists are expected."""
  for recipe in plan_json.get("recipes") or []:
    if not isinstance(recipe, dict):
      continue
    for key in ("ingredients", "instructions"):
      if isinstance(recipe.get(key), str):
        recipe[key] = [recipe[key]]

  for group in plan_json.get("shoppingList") or []:
    if isinstance(group, dict) and isinstance(group.get("items"), str):
      group["items"] = [group["items"]]

  return plan_json


class PlannerAgent(BaseAgent[PlanRequest, dict[str, Any]]):
  """Generate a weekly plan with recipes and a shopping list."""

  name = "Planner"

  async def run(self, input_data: PlanRequest) -> dict[str, Any]:
    """Return the raw plan JSON; structural validation happens in the worker."""
    prompt = render_plan_prompt(input_data.settings, input_data.previous_recipe_titles)
    raw = await self._generate(prompt=prompt, schema=plan_response_schema(), system_instruction=render_plan_system_instruction(), purpose="weekly_plan")
    return _repair_plan_json(raw)
