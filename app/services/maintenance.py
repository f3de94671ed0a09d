"""Maintenance services for startup and scheduled cleanup tasks."""

from __future__ import annotations

import logging
import time

from app.config import Settings
from app.storage.factory import _get_jobs_repo

logger = logging.getLogger(__name__)

_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
STALE_JOB_MESSAGE = "Der Auftrag wurde durch einen Serverneustart unterbrochen."


def stale_cutoff(ttl_seconds: int, *, now: float | None = None) -> str:
  """Return the ISO timestamp before which non-terminal jobs count as stale."""
  reference = time.time() if now is None else now
  return time.strftime(_DATE_FORMAT, time.gmtime(reference - ttl_seconds))


async def fail_stale_jobs(settings: Settings, *, now: float | None = None) -> int:
  """Fail jobs a crashed process left pending or in progress.

  How/Why:
    - Jobs run as fire-and-forget tasks, so a restart mid-job leaves the row non-terminal.
    - Polling clients would otherwise keep waiting until their attempt ceiling.
    - Rows updated within the TTL are left alone because a live worker may still own them.
  """
  cutoff = stale_cutoff(settings.stale_job_ttl_seconds, now=now)
  failed = await _get_jobs_repo(settings).fail_stale_jobs(older_than=cutoff, error_message=STALE_JOB_MESSAGE)
  if failed:
    logger.warning("Marked %d stale job(s) as failed (updated before %s)", failed, cutoff)
  return failed
