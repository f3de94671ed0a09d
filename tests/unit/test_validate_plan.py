"""Unit tests for generated plan validation and lenient JSON parsing."""

from __future__ import annotations

import json

import pytest

from app.ai.agents.planner import _repair_plan_json
from app.ai.json_parser import parse_json_with_fallback
from app.schema.validate_plan import validate_plan


def test_complete_plan_validates(plan_json: dict) -> None:
  ok, errors, plan = validate_plan(plan_json)
  assert ok, errors
  assert plan is not None
  assert len(plan.weekly_plan) == 7
  assert plan.recipes[0].total_calories == 420


def test_missing_recipe_title_is_reported(plan_json: dict) -> None:
  del plan_json["recipes"][1]["title"]
  ok, errors, plan = validate_plan(plan_json)
  assert not ok
  assert plan is None
  assert any(error.startswith("recipes.1.title") for error in errors)


def test_unknown_recipe_reference_is_reported(plan_json: dict) -> None:
  plan_json["weeklyPlan"][3]["meals"][0]["recipeId"] = 99
  ok, errors, _ = validate_plan(plan_json)
  assert not ok
  assert errors == ["weeklyPlan.3.meals.0.recipeId: unknown recipe id 99"]


def test_duplicate_recipe_ids_are_reported(plan_json: dict) -> None:
  plan_json["recipes"][1]["id"] = 1
  plan_json["weeklyPlan"] = [{"day": "Montag", "meals": [{"mealType": "breakfast", "recipeId": 1}]}]
  ok, errors, _ = validate_plan(plan_json)
  assert not ok
  assert "recipes.1.id: duplicate recipe id 1" in errors


def test_non_object_payload_is_rejected() -> None:
  ok, errors, _ = validate_plan(["not", "a", "plan"])
  assert not ok
  assert errors == ["<root>: expected an object, got list"]


def test_string_fields_are_wrapped_into_lists(plan_json: dict) -> None:
  plan_json["recipes"][0]["ingredients"] = "Haferflocken"
  plan_json["shoppingList"][0]["items"] = "Linsen"
  repaired = _repair_plan_json(plan_json)
  assert repaired["recipes"][0]["ingredients"] == ["Haferflocken"]
  assert repaired["shoppingList"][0]["items"] == ["Linsen"]
  assert validate_plan(repaired)[0]


def test_parse_json_strips_fences_and_trailing_commas() -> None:
  assert parse_json_with_fallback('```json\n{"name": "Woche"}\n```') == {"name": "Woche"}
  assert parse_json_with_fallback('Hier ist der Plan: {"items": ["a", "b",],} Danke!') == {"items": ["a", "b"]}


def test_parse_json_raises_when_nothing_is_recoverable() -> None:
  with pytest.raises(json.JSONDecodeError):
    parse_json_with_fallback("Leider kein JSON")
