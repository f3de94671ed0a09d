"""Shared error classification helpers for AI provider handling."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import httpx

_RETRIABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

_TRANSIENT_HINTS: tuple[str, ...] = (
  "rate limit",
  "quota",
  "resource exhausted",
  "resource_exhausted",
  "too many requests",
  "timeout",
  "timed out",
  "deadline exceeded",
  "connection reset",
  "connection refused",
  "temporarily unavailable",
  "service unavailable",
  "unavailable",
  "overloaded",
  "bad gateway",
  "internal error",
)

_OUTPUT_HINTS: tuple[str, ...] = (
  "invalid json",
  "failed to parse",
  "parse json",
  "schema",
  "validation",
)


class ProviderError(RuntimeError):
  """Provider call failed; `status_code` carries the HTTP code when one is known."""

  def __init__(self, message: str, *, status_code: int | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code


class NoCredentialsError(RuntimeError):
  """Raised when no API credential is configured for the generation provider."""


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  for hint in hints:
    if hint in message:
      return True
  return False


def _status_code(exc: BaseException) -> int | None:
  # google-genai APIError exposes `code`; httpx and our ProviderError expose a status code.
  for attr in ("status_code", "code"):
    value = getattr(exc, attr, None)
    if isinstance(value, int):
      return value
  response = getattr(exc, "response", None)
  value = getattr(response, "status_code", None)
  if isinstance(value, int):
    return value
  return None


def is_retriable_error(exc: BaseException) -> bool:
  """Return True when retrying the same credential may succeed."""
  if is_output_error(exc):
    return False

  if isinstance(exc, (TimeoutError, asyncio.TimeoutError, ConnectionError, httpx.TransportError)):
    return True

  code = _status_code(exc)
  if code is not None:
    return code in _RETRIABLE_STATUS_CODES

  return _match_hint(str(exc).lower(), _TRANSIENT_HINTS)


def is_output_error(exc: BaseException) -> bool:
  """Return True when an exception indicates invalid output formatting."""
  message = str(exc).lower()
  return _match_hint(message, _OUTPUT_HINTS)
