"""Identifier utilities."""

from __future__ import annotations

import secrets
import uuid


def generate_job_id() -> str:
  """Return a new job identifier."""
  return str(uuid.uuid4())


def generate_share_id(num_bytes: int = 8) -> str:
  """Return a short random hex token used as the public name of a shared plan."""
  return secrets.token_hex(num_bytes)
