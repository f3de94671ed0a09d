"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import json
import logging
from typing import Any, Final

from google import genai
from google.genai import errors as genai_errors

from app.ai.errors import ProviderError
from app.ai.json_parser import parse_json_with_fallback
from app.ai.providers.base import AIModel, Provider, StructuredModelResponse

logger = logging.getLogger(__name__)


class GeminiModel(AIModel):
  """Gemini model client with JSON-mode structured output."""

  def __init__(self, name: str, api_key: str) -> None:
    if not api_key:
      raise ValueError("A Gemini API key is required.")
    self.name: str = name
    self._client = genai.Client(api_key=api_key)

  async def generate_structured(self, prompt: str, schema: dict[str, Any], *, system_instruction: str | None = None) -> StructuredModelResponse:
    """Generate structured JSON output using Gemini's JSON mode."""
    config: dict[str, Any] = {"response_mime_type": "application/json", "response_schema": schema}
    if system_instruction:
      config["system_instruction"] = system_instruction

    try:
      # Use the async client to avoid blocking the asyncio event loop.
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)
    except genai_errors.APIError as exc:
      raise ProviderError(f"Gemini request failed ({exc.code}): {exc.message}", status_code=exc.code) from exc

    text = response.text or ""
    logger.debug("Gemini structured response (raw, %d chars)", len(text))

    usage = None
    if response.usage_metadata:
      usage = {"prompt_tokens": response.usage_metadata.prompt_token_count, "completion_tokens": response.usage_metadata.candidates_token_count, "total_tokens": response.usage_metadata.total_token_count}

    try:
      parsed = parse_json_with_fallback(text)
    except json.JSONDecodeError as exc:
      raise ProviderError(f"Gemini returned invalid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
      raise ProviderError(f"Gemini returned invalid JSON: expected an object, got {type(parsed).__name__}")
    return StructuredModelResponse(content=parsed, usage=usage)


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {"gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.0-flash"}

  def __init__(self) -> None:
    self.name: str = "gemini"

  def get_model(self, model: str | None = None, *, api_key: str) -> AIModel:
    """Return a Gemini model client bound to one key."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")
    return GeminiModel(model_name, api_key=api_key)
