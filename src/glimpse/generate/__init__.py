"""Glimpse image generation: prompt → stored images → indexed records."""

from glimpse.generate.service import GenerationResult, GenerationService, prompt_slug

__all__ = ["GenerationResult", "GenerationService", "prompt_slug"]
