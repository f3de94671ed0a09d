from __future__ import annotations

import json

import httpx
import pytest

from app.client import HttpJobApi, JobApiError, JobNotFoundApiError, JobTransportError


def _api(handler) -> HttpJobApi:
  client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
  return HttpJobApi(client=client)


@pytest.mark.anyio
async def test_plan_endpoints_map_wire_fields() -> None:
  requests: list[httpx.Request] = []

  def _handler(request: httpx.Request) -> httpx.Response:
    requests.append(request)
    if request.method == "POST":
      return httpx.Response(202, json={"jobId": "job-1"})
    return httpx.Response(200, json={"status": "complete", "phase": "done", "progressText": "Fertig!", "result": {"planId": 4}, "error": None})

  endpoints = _api(_handler).plan_endpoints()
  job_id = await endpoints.start({"settings": {"persons": 2, "kcal": 1800}, "previousRecipeTitles": ["Linsen-Curry"]})
  snapshot = await endpoints.status(job_id)

  assert job_id == "job-1"
  assert requests[0].url.path == "/api/generate-plan-job"
  assert json.loads(requests[0].content) == {"settings": {"persons": 2, "kcal": 1800}, "previousRecipeTitles": ["Linsen-Curry"]}
  assert requests[1].url.path == "/api/job-status/job-1"
  assert snapshot.is_terminal
  assert snapshot.result == {"planId": 4}
  assert snapshot.progress_text == "Fertig!"


@pytest.mark.anyio
async def test_share_endpoints_read_generic_job_shape() -> None:
  def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/jobs/share":
      return httpx.Response(202, json={"jobId": "job-s"})
    return httpx.Response(200, json={"status": "error", "progressText": None, "resultJson": None, "errorMessage": "Fehler beim Teilen: Plan nicht gefunden."})

  endpoints = _api(_handler).share_endpoints()
  snapshot = await endpoints.status(await endpoints.start(3))

  assert snapshot.status == "error"
  assert snapshot.error_message == "Fehler beim Teilen: Plan nicht gefunden."


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("response", "error_type"),
  [
    (httpx.Response(404, json={"detail": "Job nicht gefunden."}), JobNotFoundApiError),
    (httpx.Response(503, text="upstream down"), JobTransportError),
    (httpx.Response(422, json={"detail": [{"loc": ["body", "settings"], "msg": "Field required"}]}), JobApiError),
    (httpx.Response(200, text="<html>proxy page</html>"), JobTransportError),
  ],
)
async def test_error_responses_are_classified(response: httpx.Response, error_type: type[JobApiError]) -> None:
  api = _api(lambda request: response)
  with pytest.raises(error_type) as excinfo:
    await api.get_job_status("job-1")
  assert type(excinfo.value) is error_type


@pytest.mark.anyio
async def test_validation_detail_becomes_readable_message() -> None:
  api = _api(lambda request: httpx.Response(422, json={"detail": [{"loc": ["body", "settings"], "msg": "Field required"}]}))
  with pytest.raises(JobApiError, match="Field required") as excinfo:
    await api.start_plan_job({})
  assert excinfo.value.status_code == 422


@pytest.mark.anyio
async def test_transport_failures_become_transport_errors() -> None:
  def _handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  with pytest.raises(JobTransportError, match="connection refused"):
    await _api(_handler).get_plan_job_status("job-1")


def test_base_url_or_client_is_required() -> None:
  with pytest.raises(ValueError):
    HttpJobApi()


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("method", "body"),
  [
    ("get_plan_job_status", {"detail": "proxy says hi"}),
    ("get_plan_job_status", {"status": "queued"}),
    ("get_job_status", {"status": "complete", "resultJson": "not-an-object"}),
  ],
)
async def test_status_bodies_of_the_wrong_shape_are_transport_errors(method: str, body: dict) -> None:
  api = _api(lambda request: httpx.Response(200, json=body))
  with pytest.raises(JobTransportError, match="unexpected response"):
    await getattr(api, method)("job-1")


@pytest.mark.anyio
@pytest.mark.parametrize("body", [{}, {"jobId": ""}, {"jobId": None}])
async def test_created_bodies_without_job_id_are_transport_errors(body: dict) -> None:
  api = _api(lambda request: httpx.Response(202, json=body))
  with pytest.raises(JobTransportError):
    await api.start_share_job(3)


@pytest.mark.anyio
async def test_plan_start_without_settings_sends_nothing() -> None:
  requests: list[httpx.Request] = []

  def _handler(request: httpx.Request) -> httpx.Response:
    requests.append(request)
    return httpx.Response(202, json={"jobId": "job-1"})

  with pytest.raises(JobApiError, match="settings"):
    await _api(_handler).plan_endpoints().start({"previousRecipeTitles": []})
  assert requests == []
