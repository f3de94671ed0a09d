"""Test configuration for importing the application package."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="mealplan-tests-"))

# Ensure required settings are available before importing the app.
os.environ["MEALPLAN_ALLOWED_ORIGINS"] = "http://localhost"
os.environ["MEALPLAN_DB_DSN"] = f"sqlite+aiosqlite:///{_TEST_ROOT / 'bootstrap.db'}"
os.environ["MEALPLAN_SHARES_DIR"] = str(_TEST_ROOT / "shares")
os.environ["MEALPLAN_JOBS_AUTO_PROCESS"] = "0"
os.environ.pop("MEALPLAN_GEMINI_API_KEY", None)
os.environ.pop("MEALPLAN_TASK_SECRET", None)

from dataclasses import replace  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import Settings, get_settings  # noqa: E402
from app.core.database import dispose_engine, init_engine, init_models  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
  return replace(get_settings(), shares_dir=str(tmp_path / "shares"), jobs_auto_process=False)


@pytest.fixture
async def db(tmp_path: Path):
  """Fresh SQLite database per test, created from the ORM metadata."""
  init_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
  await init_models()
  yield
  await dispose_engine()


@pytest.fixture
async def async_client(settings: Settings):
  app.dependency_overrides[get_settings] = lambda: settings
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()


def _sample_plan_json() -> dict:
  days = ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"]
  return {
    "name": "Ausgewogene Woche",
    "weeklyPlan": [{"day": day, "meals": [{"mealType": "breakfast", "recipeId": 1}, {"mealType": "dinner", "recipeId": 2}]} for day in days],
    "recipes": [
      {"id": 1, "title": "Haferbrei mit Beeren", "ingredients": ["80 g Haferflocken", "150 g Beeren"], "instructions": ["Haferflocken kochen.", "Beeren unterheben."], "totalCalories": 420, "protein": 14, "carbs": 65, "fat": 9, "category": "breakfast"},
      {"id": 2, "title": "Linsen-Curry", "ingredients": ["200 g rote Linsen", "400 ml Kokosmilch"], "instructions": ["Linsen garen.", "Mit Kokosmilch abschmecken."], "totalCalories": 650, "protein": 28, "carbs": 70, "fat": 24, "category": "dinner"},
    ],
    "shoppingList": [{"category": "Trockenwaren", "items": ["560 g Haferflocken", "1,4 kg rote Linsen"]}],
  }


@pytest.fixture
def plan_json() -> dict:
  return _sample_plan_json()


@pytest.fixture
def plan_settings_json() -> dict:
  return {"persons": 2, "kcal": 2000, "dietaryPreference": "vegetarian", "includedMeals": ["breakfast", "dinner"]}
