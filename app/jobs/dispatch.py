"""Dependency-injected job processor dispatch helpers."""

from __future__ import annotations

from typing import Protocol

from app.jobs.models import JobRecord


class JobProcessorHandler(Protocol):
  """Processor contract for one job type."""

  async def process(self, job: JobRecord) -> JobRecord:
    """Run one in-progress job to a terminal state."""


class JobProcessorRegistry:
  """Registry mapping job types to processor handlers."""

  def __init__(self, handlers: dict[str, JobProcessorHandler]) -> None:
    self._handlers = handlers

  def resolve(self, job_type: str) -> JobProcessorHandler:
    """Resolve the processor for a job type."""
    handler = self._handlers.get(job_type)
    if handler is None:
      raise ValueError(f"Unsupported job type: {job_type}")
    return handler

  @property
  def job_types(self) -> list[str]:
    return sorted(self._handlers)
