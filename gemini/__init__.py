"""Gemini text/image generation (client, prompts, response schemas)."""

from .client import GeminiClient, GenerationClient

__all__ = ["GeminiClient", "GenerationClient"]
