from __future__ import annotations

from typing import Protocol


class TaskEnqueuer(Protocol):
  """Interface for handing a created job to whatever will run it.

  `enqueue` must return as soon as the job is handed off; it never waits for
  the job itself to finish.
  """

  async def enqueue(self, job_id: str) -> None:
    """Enqueue a job for processing."""
    ...
