import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.jobs.models import JobNotFoundError
from app.storage.plans_repo import PlanNotFoundError

logger = logging.getLogger("app.core.exceptions")

_REDACTED_DETAIL_KEYS = frozenset({"input", "body", "payload", "content"})


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    message = str(value)
    return f"{type(value).__name__}: {message}" if message else type(value).__name__
  return str(value)


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _error_response(status_code: int, detail: Any, request: Request) -> JSONResponse:
  """Build the error body; the request id lets support match reports to logs."""
  payload: dict[str, Any] = {"detail": detail}
  request_id = _request_id(request)
  if request_id:
    payload["requestId"] = request_id
  return JSONResponse(status_code=status_code, content=payload)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without the raw input values."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      scrubbed["ctx"] = {key: value for key, value in scrubbed["ctx"].items() if key != "input"}
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def _sanitize_http_detail(detail: Any) -> Any:
  if isinstance(detail, dict):
    return {key: _sanitize_http_detail(value) for key, value in detail.items() if key not in _REDACTED_DETAIL_KEYS}
  if isinstance(detail, list):
    return [_sanitize_http_detail(item) for item in detail]
  return detail


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Turn unhandled errors into an opaque 500."""
  logger.error("Unhandled exception request_id=%s path=%s error_type=%s", _request_id(request), request.url.path, type(exc).__name__, exc_info=True)
  return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", request)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Return 422 with field errors but without echoing the submitted values."""
  errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", _request_id(request), request.url.path, request.method, errors)
  return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, errors, request)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Pass 4xx details through; hide 5xx details."""
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", _request_id(request), request.url.path, exc.status_code, exc.detail)
    return _error_response(exc.status_code, "Internal Server Error", request)

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", _request_id(request), request.url.path, exc.status_code, _sanitize_http_detail(exc.detail))

  return _error_response(exc.status_code, exc.detail, request)


async def not_found_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Map repository lookups that escaped a service into a 404."""
  detail = "Job nicht gefunden." if isinstance(exc, JobNotFoundError) else "Plan nicht gefunden."
  return _error_response(status.HTTP_404_NOT_FOUND, detail, request)


def register_exception_handlers(app: Any) -> None:
  app.add_exception_handler(Exception, global_exception_handler)
  app.add_exception_handler(HTTPException, http_exception_handler)
  app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
  app.add_exception_handler(JobNotFoundError, not_found_exception_handler)
  app.add_exception_handler(PlanNotFoundError, not_found_exception_handler)
