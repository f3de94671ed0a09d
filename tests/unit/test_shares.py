from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from app.services.shares import build_share_url, render_share_document, share_document_path, write_share_document
from app.storage.plans_repo import PlanDayRecord, PlannedMealRecord, PlanRecord, RecipeRecord


def _plan(title: str = "Linsen-Curry") -> PlanRecord:
  recipe = RecipeRecord(id=5, title=title, ingredients=["200 g Linsen"], instructions=["Kochen."], total_calories=650.4, protein=28, carbs=None, fat=24, category="dinner")
  days = [PlanDayRecord(day="Montag", meals=[PlannedMealRecord(meal_type="dinner", recipe=recipe)])]
  return PlanRecord(id=1, name="Woche <1>", created_at=datetime(2024, 3, 4, tzinfo=UTC), settings={"persons": 2, "kcal": 2000}, shopping_list=[{"category": "Hülsenfrüchte", "items": ["Linsen"]}], share_id=None, days=days)


def test_render_share_document_contains_plan_content() -> None:
  document = render_share_document(_plan())
  assert "Woche &lt;1&gt;" in document
  assert "04.03.2024" in document
  assert 'id="recipe-5"' in document
  assert "Abendessen" in document
  assert "650 kcal" in document
  assert "Eiweiß: 28 g" in document
  assert "Kohlenhydrate" not in document
  assert "Hülsenfrüchte" in document


def test_render_share_document_escapes_model_output() -> None:
  document = render_share_document(_plan(title='<script>alert("x")</script>'))
  assert "<script>" not in document
  assert "&lt;script&gt;" in document


def test_empty_shopping_list_renders_placeholder() -> None:
  plan = _plan()
  document = render_share_document(PlanRecord(id=plan.id, name=plan.name, created_at=plan.created_at, settings=plan.settings, shopping_list=[], share_id=None, days=plan.days))
  assert "Keine Einkaufsliste vorhanden." in document


def test_share_paths_only_accept_hex_tokens(tmp_path: Path) -> None:
  assert share_document_path(tmp_path, "0123abcd") == tmp_path / "0123abcd.html"
  with pytest.raises(ValueError):
    share_document_path(tmp_path, "../etc/passwd")
  assert build_share_url("/shares/", "0123abcd") == "/shares/0123abcd.html"
  assert build_share_url("https://cdn.example.com/plans", "0123abcd") == "https://cdn.example.com/plans/0123abcd.html"


@pytest.mark.anyio
async def test_write_share_document_replaces_existing_file(tmp_path: Path) -> None:
  shares_dir = tmp_path / "shares"
  await write_share_document(shares_dir, "0123abcd", "<p>alt</p>")
  path = await write_share_document(shares_dir, "0123abcd", "<p>neu</p>")
  assert path.read_text(encoding="utf-8") == "<p>neu</p>"
  assert [entry.name for entry in shares_dir.iterdir()] == ["0123abcd.html"]
