"""HTTP access to the job endpoints, shaped for the polling client."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.jobs.models import JobStatus

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 10.0


class JobApiError(Exception):
  """A job endpoint rejected the request."""

  def __init__(self, message: str, *, status_code: int | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code


class JobTransportError(JobApiError):
  """The server could not be reached or answered with a server-side failure."""


class JobNotFoundApiError(JobApiError):
  """The server does not know the requested job id."""


@dataclass(frozen=True)
class JobSnapshot:
  """One observed state of a job."""

  status: str
  progress_text: str | None = None
  result: dict[str, Any] | None = None
  error_message: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in ("complete", "error")


class JobEndpoints(Protocol):
  """The two calls the polling client needs for one job kind."""

  async def start(self, payload: Any) -> str: ...

  async def status(self, job_id: str) -> JobSnapshot: ...


class _WireBody(BaseModel):
  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _JobCreatedBody(_WireBody):
  job_id: str = Field(alias="jobId", min_length=1)


class _PlanJobStatusBody(_WireBody):
  status: JobStatus
  progress_text: str | None = Field(default=None, alias="progressText")
  result: dict[str, Any] | None = None
  error: str | None = None


class _JobStatusBody(_WireBody):
  status: JobStatus
  progress_text: str | None = Field(default=None, alias="progressText")
  result_json: dict[str, Any] | None = Field(default=None, alias="resultJson")
  error_message: str | None = Field(default=None, alias="errorMessage")


BodyT = TypeVar("BodyT", bound=_WireBody)


def _parse_body(model: type[BodyT], body: dict[str, Any]) -> BodyT:
  # A 2xx body of the wrong shape usually comes from a proxy, not from the job service.
  try:
    return model.model_validate(body)
  except ValidationError as exc:
    logger.warning("Unexpected %s from job endpoint: %s", model.__name__, exc.errors(include_url=False))
    raise JobTransportError("Server returned an unexpected response.") from exc


def _detail_text(response: httpx.Response) -> str:
  try:
    body = response.json()
  except ValueError:
    return response.text or response.reason_phrase
  detail = body.get("detail") if isinstance(body, dict) else None
  if isinstance(detail, list):
    # Validation errors arrive as a list of {loc, msg} entries.
    return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
  if detail:
    return str(detail)
  return response.reason_phrase or f"HTTP {response.status_code}"


class HttpJobApi:
  """Client for the plan and share job endpoints."""

  def __init__(self, *, base_url: str | None = None, client: httpx.AsyncClient | None = None, timeout: float = _DEFAULT_TIMEOUT_SECONDS) -> None:
    if client is None and base_url is None:
      raise ValueError("Either base_url or client is required.")
    self._owns_client = client is None
    self._client = client or httpx.AsyncClient(base_url=base_url or "", timeout=timeout)

  async def aclose(self) -> None:
    if self._owns_client:
      await self._client.aclose()

  async def __aenter__(self) -> HttpJobApi:
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    await self.aclose()

  async def _request(self, method: str, url: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
    try:
      response = await self._client.request(method, url, json=json)
    except httpx.TransportError as exc:
      raise JobTransportError(str(exc) or type(exc).__name__) from exc

    if response.status_code == httpx.codes.NOT_FOUND:
      raise JobNotFoundApiError(_detail_text(response), status_code=response.status_code)
    if response.status_code >= 500:
      raise JobTransportError(_detail_text(response), status_code=response.status_code)
    if response.status_code >= 400:
      raise JobApiError(_detail_text(response), status_code=response.status_code)

    try:
      body = response.json()
    except ValueError as exc:
      raise JobTransportError("Server returned an unreadable response.", status_code=response.status_code) from exc
    if not isinstance(body, dict):
      raise JobTransportError("Server returned an unexpected response.", status_code=response.status_code)
    return body

  async def start_plan_job(self, settings: dict[str, Any], previous_recipe_titles: Sequence[str] = ()) -> str:
    body = await self._request("POST", "/api/generate-plan-job", json={"settings": settings, "previousRecipeTitles": list(previous_recipe_titles)})
    return _parse_body(_JobCreatedBody, body).job_id

  async def get_plan_job_status(self, job_id: str) -> JobSnapshot:
    body = _parse_body(_PlanJobStatusBody, await self._request("GET", f"/api/job-status/{job_id}"))
    return JobSnapshot(status=body.status, progress_text=body.progress_text, result=body.result, error_message=body.error)

  async def start_share_job(self, plan_id: int) -> str:
    body = await self._request("POST", "/api/jobs/share", json={"planId": plan_id})
    return _parse_body(_JobCreatedBody, body).job_id

  async def get_job_status(self, job_id: str) -> JobSnapshot:
    body = _parse_body(_JobStatusBody, await self._request("GET", f"/api/jobs/{job_id}"))
    return JobSnapshot(status=body.status, progress_text=body.progress_text, result=body.result_json, error_message=body.error_message)

  def plan_endpoints(self) -> JobEndpoints:
    return _PlanEndpoints(self)

  def share_endpoints(self) -> JobEndpoints:
    return _ShareEndpoints(self)


class _PlanEndpoints:
  def __init__(self, api: HttpJobApi) -> None:
    self._api = api

  async def start(self, payload: dict[str, Any]) -> str:
    settings = payload.get("settings") if isinstance(payload, dict) else None
    if not isinstance(settings, dict):
      raise JobApiError("Plan settings are missing.")
    return await self._api.start_plan_job(settings, payload.get("previousRecipeTitles", ()))

  async def status(self, job_id: str) -> JobSnapshot:
    return await self._api.get_plan_job_status(job_id)


class _ShareEndpoints:
  def __init__(self, api: HttpJobApi) -> None:
    self._api = api

  async def start(self, payload: int) -> str:
    return await self._api.start_share_job(payload)

  async def status(self, job_id: str) -> JobSnapshot:
    return await self._api.get_job_status(job_id)
