"""Provider implementations."""

from app.ai.providers.base import AIModel, Provider, StructuredModelResponse
from app.ai.providers.gemini import GeminiModel, GeminiProvider

__all__ = ["AIModel", "Provider", "StructuredModelResponse", "GeminiModel", "GeminiProvider"]
