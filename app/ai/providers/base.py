"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class StructuredModelResponse:
  """Structured model response structure."""

  content: dict[str, Any]
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for structured-output models."""

  name: str

  @abstractmethod
  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, system_instruction: str | None = None) -> StructuredModelResponse:
    """Make one blocking call that returns JSON conforming to `schema`.

    Implementations raise `ProviderError` (or the SDK's own transport errors)
    and never retry internally; retries belong to the key rotation layer.
    """


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None, *, api_key: str) -> AIModel:
    """Return a model client bound to one API key."""
