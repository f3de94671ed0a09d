"""Domain models for asynchronous plan generation and share jobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import msgspec

JobStatus = Literal["pending", "in_progress", "complete", "error"]
JobType = Literal["plan_generation", "share_preparation"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"complete", "error"})


class JobNotFoundError(LookupError):
  """Raised when a job id does not exist in the store."""


class JobTransitionError(ValueError):
  """Raised when a status update would break the job lifecycle rules."""


class JobStruct(msgspec.Struct, kw_only=True, rename="camel", tag_field="type"):
  """Base struct for job payloads and results, tagged by job type."""


class PlanGenerationPayload(JobStruct, tag="plan_generation"):
  settings: dict[str, Any]
  previous_recipe_titles: list[str] = []


class SharePreparationPayload(JobStruct, tag="share_preparation"):
  plan_id: int


class PlanGenerationResult(JobStruct, tag="plan_generation"):
  plan_id: int


class SharePreparationResult(JobStruct, tag="share_preparation"):
  share_id: str
  share_url: str


JobPayload = PlanGenerationPayload | SharePreparationPayload
JobResult = PlanGenerationResult | SharePreparationResult


def encode_struct(value: JobPayload | JobResult) -> dict[str, Any]:
  """Convert a payload or result into JSON-ready builtins, tag included."""
  return msgspec.to_builtins(value)


def decode_payload(raw: dict[str, Any]) -> JobPayload:
  return msgspec.convert(raw, type=JobPayload)


def decode_result(raw: dict[str, Any] | None) -> JobResult | None:
  if raw is None:
    return None
  return msgspec.convert(raw, type=JobResult)


def result_fields(result: JobResult | None) -> dict[str, Any] | None:
  """Return the public result fields without the internal type tag."""
  if result is None:
    return None
  data = encode_struct(result)
  data.pop("type", None)
  return data


@dataclass
class JobRecord:
  """Represents a background plan generation or share job."""

  job_id: str
  job_type: JobType
  status: JobStatus
  payload: JobPayload
  created_at: str
  updated_at: str
  phase: str | None = None
  progress_text: str | None = None
  result: JobResult | None = None
  error_message: str | None = None
  related_plan_id: int | None = None
  completed_at: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES


def check_transition(current: JobRecord, status: JobStatus, *, result: JobResult | None, error_message: str | None) -> None:
  """Enforce monotonic transitions and the result/error exclusivity rule."""

  if current.is_terminal:
    raise JobTransitionError(f"Job {current.job_id} is already {current.status}; refusing transition to {status}.")

  if status == "pending" and current.status != "pending":
    raise JobTransitionError(f"Job {current.job_id} cannot move back from {current.status} to pending.")

  if status in ("pending", "in_progress"):
    if result is not None or error_message is not None:
      raise JobTransitionError(f"Job {current.job_id} cannot carry a result or error while {status}.")
    return

  if status == "complete":
    if result is None or error_message is not None:
      raise JobTransitionError(f"Job {current.job_id} must complete with a result and no error.")
    if result.__struct_config__.tag != current.job_type:
      raise JobTransitionError(f"Job {current.job_id} of type {current.job_type} cannot store a {result.__struct_config__.tag} result.")
    return

  if status == "error":
    if result is not None or not (error_message or "").strip():
      raise JobTransitionError(f"Job {current.job_id} must fail with an error message and no result.")
    return

  raise JobTransitionError(f"Unknown job status: {status}")
