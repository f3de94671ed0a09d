import json
import logging
import time
import uuid
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.config import get_settings

logger = logging.getLogger("app.core.middleware")

_SENSITIVE_KEYS = frozenset({"password", "token", "key", "apikey", "api_key", "authorization", "cookie", "secret"})
_REQUEST_ID_HEADER = "x-request-id"


def _redact_sensitive_keys(data: Any) -> Any:
  """Redact credential-like keys from decoded JSON recursively."""
  if isinstance(data, dict):
    return {key: ("***" if key.lower() in _SENSITIVE_KEYS else _redact_sensitive_keys(value)) for key, value in data.items()}
  if isinstance(data, list):
    return [_redact_sensitive_keys(item) for item in data]
  return data


def _header(scope: Scope, name: str) -> str | None:
  encoded = name.encode("latin-1")
  for key, value in scope.get("headers", []):
    if key.lower() == encoded:
      return value.decode("latin-1")
  return None


def _is_json(content_type: str | None) -> bool:
  if not content_type:
    return False
  normalized = content_type.lower()
  return "application/json" in normalized or normalized.endswith("+json")


def _format_body_for_log(body: bytes, content_type: str | None, max_bytes: int) -> str:
  """Render a body for logs: JSON redacted, text clamped, binary summarized."""
  if not body:
    return "<empty>"
  if not (_is_json(content_type) or (content_type or "").lower().startswith("text/")):
    return f"<non-text body {len(body)} bytes>"

  text = body[:max_bytes].decode("utf-8", errors="replace")
  if len(body) > max_bytes:
    return f"{text}...(truncated)"
  if _is_json(content_type):
    try:
      return json.dumps(_redact_sensitive_keys(json.loads(text)), ensure_ascii=True)
    except json.JSONDecodeError:
      return text
  return text


async def _drain_body(receive: Receive) -> bytes:
  chunks: list[bytes] = []
  while True:
    message = await receive()
    if message.get("type") != "http.request":
      break
    chunks.append(message.get("body", b""))
    if not message.get("more_body", False):
      break
  return b"".join(chunks)


class RequestLoggingMiddleware:
  """Log method, path, status and latency per request with a correlating request id."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    settings = get_settings()
    # Reuse a caller-supplied id so client and server logs line up.
    request_id = _header(scope, _REQUEST_ID_HEADER) or str(uuid.uuid4())
    scope.setdefault("state", {})["request_id"] = request_id

    start_time = time.perf_counter()
    method = scope.get("method", "UNKNOWN")
    path = scope.get("path", "")
    logger.info("Incoming request request_id=%s %s %s", request_id, method, path)

    downstream_receive = receive
    if settings.log_http_bodies:
      request_body = await _drain_body(receive)
      logger.info("Request body request_id=%s body=%s", request_id, _format_body_for_log(request_body, _header(scope, "content-type"), settings.log_http_body_bytes))
      replayed = False

      async def downstream_receive() -> Message:
        nonlocal replayed
        if replayed:
          return {"type": "http.request", "body": b"", "more_body": False}
        replayed = True
        return {"type": "http.request", "body": request_body, "more_body": False}

    status_code = 0
    response_content_type: str | None = None
    response_chunks: list[bytes] = []

    async def send_wrapper(message: Message) -> None:
      nonlocal status_code, response_content_type
      if message["type"] == "http.response.start":
        status_code = message.get("status", 0)
        headers = MutableHeaders(scope=message)
        if _REQUEST_ID_HEADER not in headers:
          headers[_REQUEST_ID_HEADER] = request_id
        response_content_type = headers.get("content-type")
      elif message["type"] == "http.response.body" and settings.log_http_bodies:
        response_chunks.append(message.get("body", b""))
      await send(message)

    await self.app(scope, downstream_receive, send_wrapper)

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info("Response request_id=%s status=%s (took %.2fms)", request_id, status_code, elapsed_ms)
    if settings.log_http_bodies:
      logger.info("Response body request_id=%s body=%s", request_id, _format_body_for_log(b"".join(response_chunks), response_content_type, settings.log_http_body_bytes))


class SecurityHeadersMiddleware:
  """Strip server fingerprints and add baseline hardening headers."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    async def send_wrapper(message: Message) -> None:
      if message["type"] == "http.response.start":
        headers = MutableHeaders(scope=message)
        for name in ("x-powered-by", "server"):
          if name in headers:
            del headers[name]
        headers.setdefault("x-content-type-options", "nosniff")
        headers.setdefault("referrer-policy", "no-referrer")
      await send(message)

    await self.app(scope, receive, send_wrapper)
