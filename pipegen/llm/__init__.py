"""Generative model clients."""

from .runner import GenerationUnavailableError, LLMRequest, LLMRunner

__all__ = ["GenerationUnavailableError", "LLMRequest", "LLMRunner"]
