"""Prompt helpers shared by agents."""

from __future__ import annotations

from typing import Any

from app.schema.plan_models import PlanSettings
from app.schema.validate_plan import MEAL_CATEGORIES

JsonDict = dict[str, Any]

_DIET_PREFERENCE_TEXT = {
  "omnivore": "omnivore (includes meat and fish)",
  "vegetarian": "vegetarian (no meat or fish)",
  "vegan": "vegan (no animal products at all, including dairy, eggs, and honey)",
}

PLAN_SYSTEM_INSTRUCTION = """You are an expert nutritionist and chef specializing in creating balanced, delicious, and practical weekly meal plans. Your responses must be valid JSON without any text outside the JSON structure.
The JSON must strictly follow this schema:
{
  "name": "string (a creative and appealing name for the meal plan, in German)",
  "weeklyPlan": [ { "day": "string (German weekday, e.g. 'Montag')", "meals": [ { "mealType": "string (one of: {{MEAL_CATEGORIES}})", "recipeId": "number (unique integer id, starting from 1)" } ], "totalCalories": "number" } ],
  "recipes": [ { "id": "number (must match a recipeId from weeklyPlan)", "title": "string (German)", "ingredients": ["string (German, with quantities for the specified number of persons)"], "instructions": ["string (German, step by step)"], "totalCalories": "number (whole dish, all persons)", "protein": "number (grams)", "carbs": "number (grams)", "fat": "number (grams)", "category": "string (one of: {{MEAL_CATEGORIES}})" } ],
  "shoppingList": [ { "category": "string (e.g. 'Obst & Gemüse')", "items": ["string (German, with quantities)"] } ]
}
- Plan all seven days from Montag to Sonntag.
- Provide recipes only for the meal types requested by the user.
- Every recipeId in weeklyPlan must correspond to a recipe in the recipes array.
- All calorie counts and nutritional values are calculated for the specified number of persons.
- The average daily calorie intake per person should be close to the user's target.
- The shopping list must be complete and categorized logically.
- All text must be in German. Do not use markdown or comments inside the JSON.
"""

PLAN_USER_PROMPT = """Create a new weekly meal plan based on these settings:
- Number of people: {{PERSONS}}
- Target calories per person per day: {{KCAL}}
- Dietary preference: {{DIET_PREFERENCE}}
- Diet type: {{DIET_TYPE}}
- Cooking complexity: {{COMPLEXITY}}
- {{INCLUDED_MEALS}}
- Excluded ingredients: {{EXCLUDED}}
- Desired ingredients: {{DESIRED}}
- Gluten-free: {{GLUTEN_FREE}}
- Lactose-free: {{LACTOSE_FREE}}
{{MAIN_MEAL_FOCUS}}
{{PREVIOUS_RECIPES}}

Please generate the full plan in the specified JSON format.
"""

SHOPPING_LIST_SYSTEM_INSTRUCTION = """You are an expert shopping list generator. Create a complete, categorized shopping list for a list of recipes and a number of people. Respond with valid JSON containing only the shopping list:
{
  "shoppingList": [ { "category": "string (e.g. 'Obst & Gemüse')", "items": ["string (German, with quantities)"] } ]
}
- Consolidate ingredients from all recipes.
- Calculate the total quantity of each item for the specified number of people for one week.
- All text must be in German. Do not use markdown or comments inside the JSON.
"""

SHOPPING_LIST_USER_PROMPT = """Generate a weekly shopping list for {{PERSONS}} people based on the following recipes:
{{RECIPES}}

Please provide only the "shoppingList" part in the specified JSON format.
"""


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers with actual context."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


def _yes_no(flag: bool) -> str:
  return "Yes" if flag else "No"


def _main_meal_focus_text(settings: PlanSettings) -> str:
  meals = set(settings.included_meals)
  if settings.main_meal_focus == "none" or not {"lunch", "dinner"} <= meals:
    return ""
  return f"The user has chosen '{settings.main_meal_focus}' as the main meal. Make those recipes more substantial while the other of lunch or dinner stays lighter."


def _previous_recipes_text(previous_titles: list[str]) -> str:
  titles = [title.strip() for title in previous_titles if title and title.strip()]
  if not titles:
    return ""
  quoted = ", ".join(f'"{title}"' for title in dict.fromkeys(titles))
  return f"To ensure variety, AVOID recipes with these titles from the user's last plan: {quoted}."


def render_plan_system_instruction() -> str:
  return _replace_placeholders(PLAN_SYSTEM_INSTRUCTION, {"MEAL_CATEGORIES": ", ".join(MEAL_CATEGORIES)})


def render_plan_prompt(settings: PlanSettings, previous_titles: list[str]) -> str:
  """Render the user prompt for one weekly plan."""
  values = {
    "PERSONS": str(settings.persons),
    "KCAL": str(settings.kcal),
    "DIET_PREFERENCE": _DIET_PREFERENCE_TEXT[settings.dietary_preference],
    "DIET_TYPE": settings.diet_type,
    "COMPLEXITY": settings.dish_complexity,
    "INCLUDED_MEALS": f"The user wants these meals: {', '.join(settings.included_meals)}.",
    "EXCLUDED": settings.excluded_ingredients.strip() or "None",
    "DESIRED": settings.desired_ingredients.strip() or "None",
    "GLUTEN_FREE": _yes_no(settings.is_gluten_free),
    "LACTOSE_FREE": _yes_no(settings.is_lactose_free),
    "MAIN_MEAL_FOCUS": _main_meal_focus_text(settings),
    "PREVIOUS_RECIPES": _previous_recipes_text(previous_titles),
  }
  return _replace_placeholders(PLAN_USER_PROMPT, values)


def render_shopping_list_prompt(persons: int, recipe_titles: list[str]) -> str:
  recipes = "\n".join(f"- {title}" for title in recipe_titles) or "-"
  return _replace_placeholders(SHOPPING_LIST_USER_PROMPT, {"PERSONS": str(persons), "RECIPES": recipes})


def _string_list() -> JsonDict:
  return {"type": "array", "items": {"type": "string"}}


def _shopping_list_schema() -> JsonDict:
  return {"type": "array", "items": {"type": "object", "properties": {"category": {"type": "string"}, "items": _string_list()}, "required": ["category", "items"]}}


def plan_response_schema() -> JsonDict:
  """JSON schema handed to the model for plan generation."""
  meal = {"type": "object", "properties": {"mealType": {"type": "string", "enum": list(MEAL_CATEGORIES)}, "recipeId": {"type": "integer"}}, "required": ["mealType", "recipeId"]}
  day = {"type": "object", "properties": {"day": {"type": "string"}, "meals": {"type": "array", "items": meal}, "totalCalories": {"type": "number"}}, "required": ["day", "meals"]}
  recipe = {
    "type": "object",
    "properties": {
      "id": {"type": "integer"},
      "title": {"type": "string"},
      "ingredients": _string_list(),
      "instructions": _string_list(),
      "totalCalories": {"type": "number"},
      "protein": {"type": "number"},
      "carbs": {"type": "number"},
      "fat": {"type": "number"},
      "category": {"type": "string", "enum": list(MEAL_CATEGORIES)},
    },
    "required": ["id", "title", "ingredients", "instructions", "totalCalories", "category"],
  }
  return {
    "type": "object",
    "properties": {"name": {"type": "string"}, "weeklyPlan": {"type": "array", "items": day}, "recipes": {"type": "array", "items": recipe}, "shoppingList": _shopping_list_schema()},
    "required": ["name", "weeklyPlan", "recipes", "shoppingList"],
  }


def shopping_list_response_schema() -> JsonDict:
  return {"type": "object", "properties": {"shoppingList": _shopping_list_schema()}, "required": ["shoppingList"]}
