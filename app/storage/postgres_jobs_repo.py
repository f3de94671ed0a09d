"""Postgres-backed repository for background jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_session_factory
from app.jobs.models import TERMINAL_STATUSES, JobNotFoundError, JobPayload, JobRecord, JobResult, JobStatus, JobType, check_transition, decode_payload, decode_result, encode_struct
from app.schema.jobs import Job
from app.storage.jobs_repo import JobsRepository
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


def _now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class PostgresJobsRepository(JobsRepository):
  """Persist jobs to Postgres (or SQLite for local runs) using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, *, job_type: JobType, payload: JobPayload, related_plan_id: int | None = None) -> JobRecord:
    timestamp = _now_iso()
    async with self._session_factory() as session:
      row = Job(
        job_id=generate_job_id(),
        job_type=job_type,
        status="pending",
        phase="queued",
        progress_text=None,
        payload_json=encode_struct(payload),
        result_json=None,
        error_message=None,
        related_plan_id=related_plan_id,
        created_at=timestamp,
        updated_at=timestamp,
        completed_at=None,
      )
      session.add(row)
      await session.commit()
      return self._model_to_record(row)

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Job, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def claim_job(self, job_id: str, *, phase: str, progress_text: str | None = None) -> JobRecord | None:
    async with self._session_factory() as session:
      async with session.begin():
        # A conditional update is the claim; the loser of a race matches zero rows.
        stmt = update(Job).where(Job.job_id == job_id, Job.status == "pending").values(status="in_progress", phase=phase, progress_text=progress_text, updated_at=_now_iso())
        claimed = await session.execute(stmt)
        if claimed.rowcount != 1:
          return None
        row = await session.get(Job, job_id, populate_existing=True)
      return self._model_to_record(row)

  async def set_status(self, job_id: str, status: JobStatus, *, phase: str | None = None, progress_text: str | None = None, result: JobResult | None = None, error_message: str | None = None) -> JobRecord:
    async with self._session_factory() as session:
      async with session.begin():
        # Lock the row so concurrent writers serialize on the transition check.
        stmt = select(Job).where(Job.job_id == job_id).with_for_update()
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
          raise JobNotFoundError(job_id)

        check_transition(self._model_to_record(row), status, result=result, error_message=error_message)

        timestamp = _now_iso()
        row.status = status
        row.phase = phase
        row.progress_text = progress_text
        row.result_json = encode_struct(result) if result is not None else None
        row.error_message = error_message
        row.updated_at = timestamp
        row.completed_at = timestamp if status in TERMINAL_STATUSES else None

      return self._model_to_record(row)

  async def fail_stale_jobs(self, *, older_than: str, error_message: str) -> int:
    async with self._session_factory() as session:
      async with session.begin():
        stmt = select(Job).where(Job.status.in_(("pending", "in_progress")), Job.updated_at < older_than).with_for_update()
        rows = (await session.execute(stmt)).scalars().all()
        timestamp = _now_iso()
        for row in rows:
          logger.warning("Failing stale job %s (status=%s, updated_at=%s)", row.job_id, row.status, row.updated_at)
          row.status = "error"
          row.phase = "failed"
          row.result_json = None
          row.error_message = error_message
          row.updated_at = timestamp
          row.completed_at = timestamp
      return len(rows)

  @staticmethod
  def _model_to_record(row: Job) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      job_type=row.job_type,  # type: ignore[arg-type]
      status=row.status,  # type: ignore[arg-type]
      payload=decode_payload(row.payload_json),
      created_at=row.created_at,
      updated_at=row.updated_at,
      phase=row.phase,
      progress_text=row.progress_text,
      result=decode_result(row.result_json),
      error_message=row.error_message,
      related_plan_id=row.related_plan_id,
      completed_at=row.completed_at,
    )
