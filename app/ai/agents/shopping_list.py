"""Shopping list agent used when a plan comes back without one."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError

from app.ai.agents.base import BaseAgent
from app.ai.agents.prompts import SHOPPING_LIST_SYSTEM_INSTRUCTION, render_shopping_list_prompt, shopping_list_response_schema
from app.ai.errors import ProviderError
from app.schema.plan_models import ShoppingListCategory, ShoppingListDocument


@dataclass(frozen=True)
class ShoppingListRequest:
  persons: int
  recipe_titles: list[str]


class ShoppingListAgent(BaseAgent[ShoppingListRequest, list[ShoppingListCategory]]):
  """Consolidate the ingredients of a set of recipes into one list."""

  name = "ShoppingList"

  async def run(self, input_data: ShoppingListRequest) -> list[ShoppingListCategory]:
    prompt = render_shopping_list_prompt(input_data.persons, input_data.recipe_titles)
    raw = await self._generate(prompt=prompt, schema=shopping_list_response_schema(), system_instruction=SHOPPING_LIST_SYSTEM_INSTRUCTION, purpose="shopping_list")
    try:
      document = ShoppingListDocument.model_validate(raw)
    except ValidationError as exc:
      raise ProviderError(f"Shopping list failed schema validation: {exc.error_count()} errors") from exc
    return document.shopping_list
