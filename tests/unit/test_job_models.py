from __future__ import annotations

import pytest

from app.jobs.models import JobRecord, JobTransitionError, PlanGenerationPayload, PlanGenerationResult, SharePreparationPayload, SharePreparationResult, check_transition, decode_payload, decode_result, encode_struct, result_fields


def _record(status: str = "pending", job_type: str = "plan_generation") -> JobRecord:
  payload = PlanGenerationPayload(settings={"persons": 2, "kcal": 2000}) if job_type == "plan_generation" else SharePreparationPayload(plan_id=3)
  return JobRecord(job_id="job-1", job_type=job_type, status=status, payload=payload, created_at="2024-01-01T00:00:00Z", updated_at="2024-01-01T00:00:00Z")


def test_payload_encoding_carries_type_tag_and_camel_case_fields() -> None:
  encoded = encode_struct(PlanGenerationPayload(settings={"persons": 2}, previous_recipe_titles=["Linsen-Curry"]))
  assert encoded == {"type": "plan_generation", "settings": {"persons": 2}, "previousRecipeTitles": ["Linsen-Curry"]}
  decoded = decode_payload(encoded)
  assert isinstance(decoded, PlanGenerationPayload)
  assert decoded.previous_recipe_titles == ["Linsen-Curry"]


def test_result_fields_drop_internal_tag() -> None:
  result = SharePreparationResult(share_id="abcdef0123456789", share_url="/shares/abcdef0123456789.html")
  assert result_fields(result) == {"shareId": "abcdef0123456789", "shareUrl": "/shares/abcdef0123456789.html"}
  assert result_fields(None) is None
  assert decode_result(None) is None
  assert isinstance(decode_result(encode_struct(PlanGenerationResult(plan_id=7))), PlanGenerationResult)


def test_running_job_cannot_carry_result_or_error() -> None:
  check_transition(_record(), "in_progress", result=None, error_message=None)
  with pytest.raises(JobTransitionError):
    check_transition(_record(), "in_progress", result=PlanGenerationResult(plan_id=1), error_message=None)
  with pytest.raises(JobTransitionError):
    check_transition(_record("in_progress"), "in_progress", result=None, error_message="boom")


def test_complete_requires_matching_result() -> None:
  check_transition(_record("in_progress"), "complete", result=PlanGenerationResult(plan_id=1), error_message=None)
  with pytest.raises(JobTransitionError):
    check_transition(_record("in_progress"), "complete", result=None, error_message=None)
  with pytest.raises(JobTransitionError, match="cannot store"):
    check_transition(_record("in_progress"), "complete", result=SharePreparationResult(share_id="a" * 16, share_url="/x"), error_message=None)


def test_error_requires_non_blank_message() -> None:
  check_transition(_record("in_progress"), "error", result=None, error_message="Fehler beim Teilen: kaputt")
  with pytest.raises(JobTransitionError):
    check_transition(_record("in_progress"), "error", result=None, error_message="   ")


@pytest.mark.parametrize("terminal", ["complete", "error"])
def test_terminal_jobs_never_change(terminal: str) -> None:
  with pytest.raises(JobTransitionError, match="already"):
    check_transition(_record(terminal), "in_progress", result=None, error_message=None)


def test_jobs_never_move_back_to_pending() -> None:
  with pytest.raises(JobTransitionError, match="back"):
    check_transition(_record("in_progress"), "pending", result=None, error_message=None)
