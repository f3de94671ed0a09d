"""Pydantic models for plan settings and generated meal plans."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator

MealCategory = Literal["breakfast", "lunch", "coffee", "dinner", "snack"]
DietaryPreference = Literal["omnivore", "vegetarian", "vegan"]
DietType = Literal["balanced", "low-carb", "keto", "high-protein", "mediterranean"]
DishComplexity = Literal["simple", "advanced", "fancy"]
MainMealFocus = Literal["lunch", "dinner", "none"]

WEEK_DAYS: tuple[str, ...] = ("Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag")


def _to_camel(string: str) -> str:
  head, *tail = string.split("_")
  return head + "".join(word.capitalize() for word in tail)


class CamelModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)


class PlanSettings(CamelModel):
  """User preferences that drive plan generation."""

  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="forbid")

  persons: StrictInt = Field(ge=1, le=12)
  kcal: StrictInt = Field(ge=800, le=6000, description="Target calories per person per day.")
  dietary_preference: DietaryPreference = "omnivore"
  diet_type: DietType = "balanced"
  dish_complexity: DishComplexity = "simple"
  excluded_ingredients: StrictStr = Field(default="", max_length=500)
  desired_ingredients: StrictStr = Field(default="", max_length=500)
  is_gluten_free: StrictBool = False
  is_lactose_free: StrictBool = False
  included_meals: list[MealCategory] = Field(default_factory=lambda: ["breakfast", "dinner"], min_length=1, max_length=5)
  main_meal_focus: MainMealFocus = "none"

  @field_validator("included_meals")
  @classmethod
  def _dedupe_meals(cls, value: list[str]) -> list[str]:
    # Preserve the caller's order while dropping repeats.
    return list(dict.fromkeys(value))


class GeneratedRecipe(CamelModel):
  id: StrictInt | StrictStr
  title: StrictStr = Field(min_length=1)
  ingredients: list[StrictStr]
  instructions: list[StrictStr]
  total_calories: StrictInt | StrictFloat
  protein: StrictInt | StrictFloat | None = None
  carbs: StrictInt | StrictFloat | None = None
  fat: StrictInt | StrictFloat | None = None
  category: MealCategory

  @field_validator("title")
  @classmethod
  def _strip_title(cls, value: str) -> str:
    stripped = value.strip()
    if not stripped:
      raise ValueError("title must not be blank")
    return stripped


class PlannedMeal(CamelModel):
  meal_type: MealCategory
  recipe_id: StrictInt | StrictStr


class PlannedDay(CamelModel):
  day: StrictStr = Field(min_length=1)
  meals: list[PlannedMeal]
  total_calories: StrictInt | StrictFloat | None = None


class ShoppingListCategory(CamelModel):
  category: StrictStr
  items: list[StrictStr]


class ShoppingListDocument(CamelModel):
  shopping_list: list[ShoppingListCategory]


class GeneratedPlan(CamelModel):
  """Structured plan returned by the generation model."""

  name: StrictStr = Field(min_length=1)
  weekly_plan: list[PlannedDay] = Field(min_length=1)
  recipes: list[GeneratedRecipe] = Field(min_length=1)
  shopping_list: list[ShoppingListCategory] = Field(default_factory=list)
