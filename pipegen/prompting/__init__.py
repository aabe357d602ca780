"""Prompt construction for workflow and template generation."""

from .builder import PromptBuilder

__all__ = ["PromptBuilder"]
