"""Prompt construction for chunk analysis and synthesis."""

from .builder import PromptBuilder

__all__ = ["PromptBuilder"]
