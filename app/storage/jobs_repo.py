"""Storage interfaces for background jobs."""

from __future__ import annotations

from typing import Protocol

from app.jobs.models import JobPayload, JobRecord, JobResult, JobStatus, JobType


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, *, job_type: JobType, payload: JobPayload, related_plan_id: int | None = None) -> JobRecord:
    """Persist a new pending job and return it with its generated id."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier; never mutates the row."""

  async def claim_job(self, job_id: str, *, phase: str, progress_text: str | None = None) -> JobRecord | None:
    """Atomically move a pending job to in_progress; return None when it is not pending."""

  async def set_status(self, job_id: str, status: JobStatus, *, phase: str | None = None, progress_text: str | None = None, result: JobResult | None = None, error_message: str | None = None) -> JobRecord:
    """Overwrite the mutable fields of a job in one transaction.

    Raises JobNotFoundError for unknown ids and JobTransitionError when the
    update would break the lifecycle rules.
    """

  async def fail_stale_jobs(self, *, older_than: str, error_message: str) -> int:
    """Mark non-terminal jobs last updated before `older_than` as failed."""
