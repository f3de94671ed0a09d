"""Base class for AI agents."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from app.ai.key_rotation import Credential, KeyRotationExecutor
from app.ai.providers.base import Provider, StructuredModelResponse

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
UsageSink = Callable[[dict[str, Any]], None] | None


class BaseAgent(ABC, Generic[InputT, OutputT]):
  """Base agent with shared dependencies."""

  name: str

  def __init__(self, *, provider: Provider, model_name: str, executor: KeyRotationExecutor, usage_sink: UsageSink = None) -> None:
    self._provider = provider
    self._model_name = model_name
    self._executor = executor
    self._usage_sink = usage_sink
    self.last_credential_label: str | None = None

  @abstractmethod
  async def run(self, input_data: InputT) -> OutputT:
    """Run the agent on input data."""

  async def _generate(self, *, prompt: str, schema: dict[str, Any], system_instruction: str | None, purpose: str) -> dict[str, Any]:
    """Run one structured call through the key rotation executor."""

    async def _call(credential: Credential) -> StructuredModelResponse:
      model = self._provider.get_model(self._model_name, api_key=credential.secret)
      return await model.generate_structured(prompt, schema, system_instruction=system_instruction)

    outcome = await self._executor.run(_call)
    self.last_credential_label = outcome.credential_label
    logging.getLogger(__name__).info("%s call purpose=%s succeeded credential=%s attempts=%d", self.name, purpose, outcome.credential_label, outcome.attempts)
    self._record_usage(purpose=purpose, credential_label=outcome.credential_label, usage=outcome.value.usage)
    return outcome.value.content

  def _record_usage(self, *, purpose: str, credential_label: str, usage: dict[str, int] | None) -> None:
    if not usage or not self._usage_sink:
      return
    payload = {"model": self._model_name, "agent": self.name, "purpose": purpose, "credential": credential_label, **usage}
    self._usage_sink(payload)
