"""Client-side tracking of plan and share jobs."""

from app.client.api import HttpJobApi, JobApiError, JobEndpoints, JobNotFoundApiError, JobSnapshot, JobTransportError
from app.client.handle import ClientJobHandle
from app.client.poller import PLAN_POLICY, SHARE_POLICY, JobClient, JobClientBusyError, JobOutcome, PollPolicy
from app.client.store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore

__all__ = [
  "ClientJobHandle",
  "HttpJobApi",
  "InMemoryKeyValueStore",
  "JobApiError",
  "JobClient",
  "JobClientBusyError",
  "JobEndpoints",
  "JobNotFoundApiError",
  "JobOutcome",
  "JobSnapshot",
  "JobTransportError",
  "JsonFileKeyValueStore",
  "KeyValueStore",
  "PLAN_POLICY",
  "PollPolicy",
  "SHARE_POLICY",
]
