"""Compress, chunk, and analyze multi-language codebases with a remote LLM."""

__version__ = "0.1.0"
