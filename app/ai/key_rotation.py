"""Multi-credential fallback with bounded per-key retries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.ai.backoff import INITIAL_BACKOFF_MS, MAX_RETRIES_PER_KEY, next_delay
from app.ai.errors import NoCredentialsError, is_retriable_error

T = TypeVar("T")
logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Credential:
  """An API key plus a label that is safe to log."""

  label: str
  secret: str = ""

  def __repr__(self) -> str:
    return f"Credential(label={self.label!r})"


@dataclass(frozen=True)
class RotationOutcome(Generic[T]):
  value: T
  credential_label: str
  attempts: int


def credentials_from_keys(keys: Sequence[str]) -> list[Credential]:
  """Label keys as primary, fallback-1, fallback-2, ... in priority order."""
  credentials: list[Credential] = []
  for index, key in enumerate(keys):
    label = "primary" if index == 0 else f"fallback-{index}"
    credentials.append(Credential(label=label, secret=key))
  return credentials


class KeyRotationExecutor:
  """
  Run an operation against an ordered list of credentials.

  Retriable failures are retried on the same credential with exponential
  backoff; any other failure moves on to the next credential at once. When
  every credential is exhausted the last error is raised.
  """

  def __init__(self, credentials: Sequence[Credential], *, max_retries_per_key: int = MAX_RETRIES_PER_KEY, initial_backoff_ms: int = INITIAL_BACKOFF_MS, sleep: SleepFn | None = None, is_retriable: Callable[[BaseException], bool] = is_retriable_error) -> None:
    if max_retries_per_key < 1:
      raise ValueError("max_retries_per_key must be at least 1.")
    self._credentials = list(credentials)
    self._max_retries = max_retries_per_key
    self._initial_backoff_ms = initial_backoff_ms
    self._sleep = sleep or asyncio.sleep
    self._is_retriable = is_retriable

  @property
  def credential_labels(self) -> list[str]:
    return [credential.label for credential in self._credentials]

  async def run(self, operation: Callable[[Credential], Awaitable[T]]) -> RotationOutcome[T]:
    last_error: BaseException | None = None
    total_attempts = 0
    for credential in self._credentials:
      for attempt in range(self._max_retries):
        total_attempts += 1
        try:
          value = await operation(credential)
        except Exception as exc:  # noqa: BLE001
          last_error = exc
          retriable = self._is_retriable(exc)
          logger.warning("Generation call failed credential=%s attempt=%d/%d retriable=%s error=%s", credential.label, attempt + 1, self._max_retries, retriable, exc)
          if not retriable:
            break
          if attempt + 1 < self._max_retries:
            await self._sleep(next_delay(attempt, initial_ms=self._initial_backoff_ms))
          continue
        if credential.label != self._credentials[0].label:
          logger.info("Generation call succeeded with fallback credential=%s", credential.label)
        return RotationOutcome(value=value, credential_label=credential.label, attempts=total_attempts)

    if last_error is None:
      # Only reachable with an empty credential list.
      raise NoCredentialsError("No generation API key configured (MEALPLAN_GEMINI_API_KEY).")
    raise last_error
