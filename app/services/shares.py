"""Static HTML rendering for shared plans.

The share template lives on disk and is rendered with escaped placeholders.
Repeated blocks (days, recipes, shopping list) are assembled here from escaped
fragments and inserted as trusted markup.
"""

from __future__ import annotations

import html
import os
import re
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any

from starlette.concurrency import run_in_threadpool

from app.storage.plans_repo import PlanDayRecord, PlanRecord, RecipeRecord

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")
_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
SHARE_TEMPLATE = "share_plan.html"

MEAL_LABELS = {"breakfast": "Frühstück", "lunch": "Mittagessen", "coffee": "Kaffee & Kuchen", "dinner": "Abendessen", "snack": "Snack"}
_SHARE_ID_RE = re.compile(r"^[a-f0-9]{8,64}$")


def _escape(value: Any) -> str:
  return html.escape("" if value is None else str(value), quote=True)


def _render_text(raw_template: str, *, placeholders: dict[str, Any], trusted: frozenset[str] = frozenset()) -> str:
  """Replace {{placeholders}}; keys listed in `trusted` are inserted without escaping."""

  def _replace(match: re.Match[str]) -> str:
    key = match.group(1)
    value = placeholders.get(key, "")
    if key in trusted:
      return str(value)
    return _escape(value)

  return _PLACEHOLDER_RE.sub(_replace, raw_template)


@lru_cache(maxsize=4)
def _load_template_file(filename: str) -> str:
  """Load a template file from disk with caching."""
  return (_TEMPLATE_DIR / filename).read_text(encoding="utf-8")


def _format_calories(value: float) -> str:
  return f"{round(value):d} kcal"


def _render_day(day: PlanDayRecord) -> str:
  items = "".join(f'<li><span class="meal-type">{_escape(MEAL_LABELS.get(meal.meal_type, meal.meal_type))}</span> <a href="#recipe-{meal.recipe.id}">{_escape(meal.recipe.title)}</a></li>' for meal in day.meals)
  return f'<section class="day"><h3>{_escape(day.day)}</h3><ul>{items}</ul><p class="day-total">{_escape(_format_calories(day.total_calories))}</p></section>'


def _render_recipe(recipe: RecipeRecord) -> str:
  ingredients = "".join(f"<li>{_escape(item)}</li>" for item in recipe.ingredients)
  instructions = "".join(f"<li>{_escape(step)}</li>" for step in recipe.instructions)
  macros = [f"{label}: {round(value)} g" for label, value in (("Eiweiß", recipe.protein), ("Kohlenhydrate", recipe.carbs), ("Fett", recipe.fat)) if value is not None]
  macro_text = f" · {' · '.join(macros)}" if macros else ""
  return (
    f'<article class="recipe" id="recipe-{recipe.id}">'
    f"<h3>{_escape(recipe.title)}</h3>"
    f'<p class="recipe-meta">{_escape(MEAL_LABELS.get(recipe.category, recipe.category))} · {_escape(_format_calories(recipe.total_calories))}{_escape(macro_text)}</p>'
    f"<h4>Zutaten</h4><ul>{ingredients}</ul>"
    f"<h4>Zubereitung</h4><ol>{instructions}</ol>"
    "</article>"
  )


def _render_shopping_list(groups: list[dict[str, Any]]) -> str:
  blocks: list[str] = []
  for group in groups:
    items = "".join(f"<li>{_escape(item)}</li>" for item in group.get("items") or [])
    blocks.append(f'<div class="shopping-group"><h3>{_escape(group.get("category"))}</h3><ul>{items}</ul></div>')
  return "".join(blocks) or "<p>Keine Einkaufsliste vorhanden.</p>"


def render_share_document(plan: PlanRecord) -> str:
  """Render a self-contained HTML page for a stored plan."""
  placeholders = {
    "plan_name": plan.name,
    "created_at": plan.created_at.strftime("%d.%m.%Y"),
    "persons": plan.settings.get("persons", ""),
    "kcal": plan.settings.get("kcal", ""),
    "days_html": "".join(_render_day(day) for day in plan.days),
    "recipes_html": "".join(_render_recipe(recipe) for recipe in plan.recipes),
    "shopping_html": _render_shopping_list(plan.shopping_list),
  }
  return _render_text(_load_template_file(SHARE_TEMPLATE), placeholders=placeholders, trusted=frozenset({"days_html", "recipes_html", "shopping_html"}))


def share_document_path(shares_dir: str | Path, share_id: str) -> Path:
  """Resolve the file for a share id, rejecting anything that is not a hex token."""
  if not _SHARE_ID_RE.match(share_id):
    raise ValueError(f"Invalid share id: {share_id!r}")
  return Path(shares_dir) / f"{share_id}.html"


def build_share_url(url_prefix: str, share_id: str) -> str:
  return f"{url_prefix.rstrip('/')}/{share_id}.html"


def _write_atomic(path: Path, content: str) -> None:
  path.parent.mkdir(parents=True, exist_ok=True)
  fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".share-", suffix=".tmp")
  try:
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
      handle.write(content)
    os.replace(tmp_name, path)
  except BaseException:
    Path(tmp_name).unlink(missing_ok=True)
    raise


async def write_share_document(shares_dir: str | Path, share_id: str, content: str) -> Path:
  """Write the rendered document; readers never observe a partially written file."""
  path = share_document_path(shares_dir, share_id)
  await run_in_threadpool(_write_atomic, path, content)
  return path
