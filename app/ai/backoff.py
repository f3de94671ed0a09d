"""Backoff schedule for retrying generation calls on one credential."""

from __future__ import annotations

MAX_RETRIES_PER_KEY = 3
INITIAL_BACKOFF_MS = 1000


def next_delay(attempt: int, *, initial_ms: int = INITIAL_BACKOFF_MS) -> float:
  """
  Return the delay in seconds to wait after a failed attempt.

  `attempt` is 0-indexed, so the schedule is 1s, 2s, 4s, ...
  """
  if attempt < 0:
    raise ValueError("attempt must be zero or positive.")
  return (initial_ms * (2**attempt)) / 1000.0


def backoff_schedule(max_attempts: int = MAX_RETRIES_PER_KEY, *, initial_ms: int = INITIAL_BACKOFF_MS) -> list[float]:
  """Delays slept between attempts on one key; nothing is slept after the last attempt."""
  return [next_delay(attempt, initial_ms=initial_ms) for attempt in range(max(max_attempts - 1, 0))]
