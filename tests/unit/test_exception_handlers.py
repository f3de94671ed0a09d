"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from app.core.exceptions import _sanitize_http_detail, _sanitize_validation_errors
from app.core.middleware import _format_body_for_log, _redact_sensitive_keys


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body", "settings", "kcal"), "msg": "Value error, kcal too low.", "input": {"kcal": 10}, "ctx": {"error": ValueError("kcal too low."), "input": 10}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "settings", "kcal"]
  assert sanitized[0]["ctx"] == {"error": "ValueError: kcal too low."}


def test_sanitize_http_detail_drops_payload_keys() -> None:
  detail = {"message": "rejected", "payload": {"settings": {}}, "nested": [{"body": "x", "field": "planId"}]}
  assert _sanitize_http_detail(detail) == {"message": "rejected", "nested": [{"field": "planId"}]}


def test_body_logging_redacts_secrets_and_truncates() -> None:
  assert _redact_sensitive_keys({"job_id": "j", "secret": "s", "nested": [{"token": "t"}]}) == {"job_id": "j", "secret": "***", "nested": [{"token": "***"}]}
  assert _format_body_for_log(b'{"authorization": "Bearer x"}', "application/json", 2048) == '{"authorization": "***"}'
  assert _format_body_for_log(b"abcdef", "text/plain", 3) == "abc...(truncated)"
  assert _format_body_for_log(b"\x89PNG", "image/png", 2048) == "<non-text body 4 bytes>"
  assert _format_body_for_log(b"", "application/json", 2048) == "<empty>"
