"""Resumable polling of one job kind.

A `JobClient` owns at most one job at a time. Starting a job persists its id
under the kind's marker key so a restarted client can `resume()` polling
instead of losing the job. The marker is removed whenever the client gives up
on the job: terminal state, lost connection, timeout, unknown id, or a user
cancel. A poll interrupted from outside, such as a cancelled task, keeps the
marker so the job can be resumed.

Cancellation only stops local interest in the job. The server keeps running
it, and a later `start()` creates an independent job.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from app.client.api import JobApiError, JobEndpoints, JobNotFoundApiError, JobSnapshot
from app.client.handle import ClientJobHandle
from app.client.store import KeyValueStore
from app.jobs.models import JobType

logger = logging.getLogger(__name__)

ClientState = Literal["idle", "starting", "polling", "cancelling"]
OutcomeReason = Literal["complete", "error", "start_failed", "connection_lost", "not_found", "timeout", "cancelled"]
SleepFn = Callable[[float], Awaitable[Any]]
ClockFn = Callable[[], float]
ProgressObserver = Callable[[str], None]

START_FAILED_PREFIX = "Job konnte nicht gestartet werden"
CONNECTION_LOST_MESSAGE = "Verbindung zum Server verloren."
NOT_FOUND_MESSAGE = "Job nicht gefunden."
TIMEOUT_MESSAGE = "Die Anfrage hat zu lange gedauert."
CANCELLED_MESSAGE = "Vorgang abgebrochen."
UNKNOWN_ERROR_MESSAGE = "Unbekannter Fehler"


@dataclass(frozen=True)
class PollPolicy:
  interval: float
  error_interval: float
  max_attempts: int
  max_consecutive_errors: int
  min_cancel_delay: float = 2.0


PLAN_POLICY = PollPolicy(interval=5.0, error_interval=5.0, max_attempts=120, max_consecutive_errors=4)
SHARE_POLICY = PollPolicy(interval=3.0, error_interval=5.0, max_attempts=200, max_consecutive_errors=5)

DEFAULT_POLICIES: dict[str, PollPolicy] = {"plan_generation": PLAN_POLICY, "share_preparation": SHARE_POLICY}


@dataclass(frozen=True)
class JobOutcome:
  """How a tracked job ended from the client's point of view."""

  reason: OutcomeReason
  job_id: str | None = None
  result: dict[str, Any] | None = None
  error: str | None = None

  @property
  def ok(self) -> bool:
    return self.reason == "complete"


class JobClientBusyError(RuntimeError):
  """Raised when starting or resuming while another job is tracked."""


class JobClient:
  """Start, poll, resume and cancel jobs of one kind."""

  def __init__(self, *, kind: JobType, endpoints: JobEndpoints, store: KeyValueStore, policy: PollPolicy | None = None, sleep: SleepFn | None = None, clock: ClockFn | None = None) -> None:
    self.kind = kind
    self.policy = policy or DEFAULT_POLICIES[kind]
    self._endpoints = endpoints
    self._store = store
    self._sleep = sleep or asyncio.sleep
    self._clock = clock or time.monotonic
    self._observers: list[ProgressObserver] = []
    self._state: ClientState = "idle"
    self._job_id: str | None = None
    self._run_token = 0
    self._polling_started_at: float | None = None
    self.progress_text: str | None = None
    self.last_error: str | None = None

  @property
  def state(self) -> ClientState:
    return self._state

  @property
  def job_id(self) -> str | None:
    return self._job_id

  def add_progress_observer(self, observer: ProgressObserver) -> None:
    self._observers.append(observer)

  def can_cancel(self) -> bool:
    if self._state != "polling" or self._polling_started_at is None:
      return False
    return self._clock() - self._polling_started_at >= self.policy.min_cancel_delay

  async def start(self, payload: Any) -> JobOutcome:
    """Start a job and poll it until the client stops tracking it."""
    if self._state != "idle":
      raise JobClientBusyError(f"A {self.kind} job is already {self._state}.")

    self._state = "starting"
    self.last_error = None
    self.progress_text = None
    try:
      job_id = await self._endpoints.start(payload)
      ClientJobHandle(job_id=job_id, kind=self.kind).write(self._store)
    except JobApiError as exc:
      self._state = "idle"
      message = f"{START_FAILED_PREFIX}: {exc}"
      self.last_error = message
      logger.warning("Starting %s job failed: %s", self.kind, exc)
      return JobOutcome(reason="start_failed", error=message)
    except BaseException:
      self._state = "idle"
      raise

    return await self._poll(job_id)

  async def resume(self) -> JobOutcome | None:
    """Continue polling a job persisted by an earlier client, if there is one."""
    if self._state != "idle":
      raise JobClientBusyError(f"A {self.kind} job is already {self._state}.")
    handle = ClientJobHandle.read(self._store, self.kind)
    if handle is None:
      return None
    logger.info("Resuming %s job %s", self.kind, handle.job_id)
    self.last_error = None
    return await self._poll(handle.job_id)

  def cancel(self) -> bool:
    """Stop tracking the current job; returns False when cancelling is not allowed yet."""
    if not self.can_cancel():
      return False
    self._state = "cancelling"
    job_id = self._job_id
    # Invalidate the running poll loop; it exits at its next checkpoint without side effects.
    self._run_token += 1
    self._finish(JobOutcome(reason="cancelled", job_id=job_id, error=CANCELLED_MESSAGE))
    logger.info("Cancelled tracking of %s job %s; the server keeps processing it", self.kind, job_id)
    return True

  def _notify(self, text: str) -> None:
    self.progress_text = text
    for observer in self._observers:
      observer(text)

  def _release(self) -> None:
    self._state = "idle"
    self._job_id = None
    self._polling_started_at = None

  def _finish(self, outcome: JobOutcome) -> JobOutcome:
    ClientJobHandle.clear(self._store, self.kind)
    self._release()
    self.last_error = outcome.error
    return outcome

  async def _poll(self, job_id: str) -> JobOutcome:
    self._run_token += 1
    token = self._run_token
    self._job_id = job_id
    self._state = "polling"
    self._polling_started_at = self._clock()

    try:
      return await self._poll_until_done(job_id, token)
    except Exception:
      if token == self._run_token:
        logger.exception("Polling %s job %s crashed", self.kind, job_id)
        self._finish(JobOutcome(reason="error", job_id=job_id, error=UNKNOWN_ERROR_MESSAGE))
      raise
    finally:
      if token == self._run_token and self._state == "polling":
        # Interrupted from outside, e.g. the task was cancelled; the marker stays for resume().
        self._release()

  async def _poll_until_done(self, job_id: str, token: int) -> JobOutcome:
    attempts = 0
    consecutive_errors = 0
    while True:
      if token != self._run_token:
        return JobOutcome(reason="cancelled", job_id=job_id, error=CANCELLED_MESSAGE)
      if attempts >= self.policy.max_attempts:
        logger.warning("%s job %s exceeded %d status reads", self.kind, job_id, self.policy.max_attempts)
        return self._finish(JobOutcome(reason="timeout", job_id=job_id, error=TIMEOUT_MESSAGE))

      attempts += 1
      try:
        snapshot = await self._endpoints.status(job_id)
      except JobNotFoundApiError:
        if token != self._run_token:
          continue
        logger.warning("%s job %s is unknown to the server", self.kind, job_id)
        return self._finish(JobOutcome(reason="not_found", job_id=job_id, error=NOT_FOUND_MESSAGE))
      except JobApiError as exc:
        if token != self._run_token:
          continue
        consecutive_errors += 1
        logger.warning("Status read for %s job %s failed (%d/%d): %s", self.kind, job_id, consecutive_errors, self.policy.max_consecutive_errors, exc)
        if consecutive_errors >= self.policy.max_consecutive_errors:
          return self._finish(JobOutcome(reason="connection_lost", job_id=job_id, error=CONNECTION_LOST_MESSAGE))
        await self._sleep(self.policy.error_interval)
        continue

      if token != self._run_token:
        continue
      consecutive_errors = 0
      outcome = self._handle_snapshot(job_id, snapshot)
      if outcome is not None:
        return outcome
      await self._sleep(self.policy.interval)

  def _handle_snapshot(self, job_id: str, snapshot: JobSnapshot) -> JobOutcome | None:
    if snapshot.status == "complete":
      return self._finish(JobOutcome(reason="complete", job_id=job_id, result=snapshot.result or {}))
    if snapshot.status == "error":
      return self._finish(JobOutcome(reason="error", job_id=job_id, error=snapshot.error_message or UNKNOWN_ERROR_MESSAGE))
    self._notify(snapshot.progress_text or snapshot.status)
    return None
