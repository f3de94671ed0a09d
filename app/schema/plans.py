from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

JsonColumn = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
  return datetime.now(UTC)


class Plan(Base):
  __tablename__ = "plans"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
  settings: Mapped[dict[str, Any]] = mapped_column(JsonColumn, nullable=False)
  shopping_list: Mapped[list[Any]] = mapped_column(JsonColumn, nullable=False, default=list)
  share_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)

  entries: Mapped[list[PlanRecipe]] = relationship(back_populates="plan", cascade="all, delete-orphan", passive_deletes=True)


class Recipe(Base):
  __tablename__ = "recipes"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  title: Mapped[str] = mapped_column(String, nullable=False, unique=True)
  ingredients: Mapped[list[str]] = mapped_column(JsonColumn, nullable=False)
  instructions: Mapped[list[str]] = mapped_column(JsonColumn, nullable=False)
  total_calories: Mapped[float] = mapped_column(Float, nullable=False)
  protein: Mapped[float | None] = mapped_column(Float, nullable=True)
  carbs: Mapped[float | None] = mapped_column(Float, nullable=True)
  fat: Mapped[float | None] = mapped_column(Float, nullable=True)
  category: Mapped[str] = mapped_column(String, nullable=False, index=True)
  dietary_preference: Mapped[str | None] = mapped_column(String, nullable=True)
  diet_type: Mapped[str | None] = mapped_column(String, nullable=True)
  dish_complexity: Mapped[str | None] = mapped_column(String, nullable=True)
  is_gluten_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  is_lactose_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PlanRecipe(Base):
  __tablename__ = "plan_recipes"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  plan_id: Mapped[int] = mapped_column(ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)
  recipe_id: Mapped[int] = mapped_column(ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
  day_of_week: Mapped[str] = mapped_column(String, nullable=False)
  meal_type: Mapped[str] = mapped_column(String, nullable=False)
  note: Mapped[str | None] = mapped_column(Text, nullable=True)

  plan: Mapped[Plan] = relationship(back_populates="entries")
  recipe: Mapped[Recipe] = relationship()
