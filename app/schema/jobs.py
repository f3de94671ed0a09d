from __future__ import annotations

from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.schema.plans import JsonColumn


class Job(Base):
  __tablename__ = "jobs"
  __table_args__ = (Index("ix_jobs_status_created_at", "status", "created_at"),)

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  job_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  status: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'pending'"))
  phase: Mapped[str | None] = mapped_column(String, nullable=True)
  progress_text: Mapped[str | None] = mapped_column(Text, nullable=True)
  payload_json: Mapped[dict[str, Any]] = mapped_column(JsonColumn, nullable=False)
  result_json: Mapped[dict[str, Any] | None] = mapped_column(JsonColumn, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  related_plan_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=True, index=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False)
  updated_at: Mapped[str] = mapped_column(String, nullable=False)
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)
