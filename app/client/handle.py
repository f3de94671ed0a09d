from __future__ import annotations

from dataclasses import dataclass

from app.client.store import KeyValueStore
from app.jobs.models import JobType

HANDLE_KEYS: dict[str, str] = {"plan_generation": "activePlanJobId", "share_preparation": "activeShareJobId"}


def handle_key(kind: JobType) -> str:
  try:
    return HANDLE_KEYS[kind]
  except KeyError as exc:
    raise ValueError(f"Unknown job kind: {kind}") from exc


@dataclass(frozen=True)
class ClientJobHandle:
  """The locally persisted marker of an in-flight job, one per job kind."""

  job_id: str
  kind: JobType

  @classmethod
  def read(cls, store: KeyValueStore, kind: JobType) -> ClientJobHandle | None:
    job_id = store.get(handle_key(kind))
    if not job_id:
      return None
    return cls(job_id=job_id, kind=kind)

  def write(self, store: KeyValueStore) -> None:
    store.set(handle_key(self.kind), self.job_id)

  @staticmethod
  def clear(store: KeyValueStore, kind: JobType) -> None:
    store.delete(handle_key(kind))
