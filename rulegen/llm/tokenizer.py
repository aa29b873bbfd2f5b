"""Token counters injected into the chunker and cost estimates."""

from __future__ import annotations

from typing import Protocol

from ..errors import ConfigError
from ..models import CompressedCodebase

_CL100K = "cl100k_base"
_O200K = "o200k_base"


class Tokenizer(Protocol):
    """Anything that can count tokens in a piece of text."""

    def count_tokens(self, text: str) -> int:
        ...


def encoding_for_model(model: str) -> str:
    """Pick the tiktoken encoding that best approximates ``model``.

    GPT-4o and o1 families use ``o200k_base``; GPT-4, GPT-3.5, Claude and
    unknown models fall back to ``cl100k_base``.
    """
    lowered = model.lower()
    if "gpt-4o" in lowered or "o1" in lowered:
        return _O200K
    return _CL100K


class TiktokenTokenizer:
    """Exact BPE counts via tiktoken."""

    def __init__(self, encoding_name: str = _CL100K) -> None:
        import tiktoken

        try:
            self._encoding = tiktoken.get_encoding(encoding_name)
        except (KeyError, ValueError) as exc:
            raise ConfigError(f"Unknown tiktoken encoding '{encoding_name}'") from exc
        self.encoding_name = encoding_name

    @classmethod
    def for_model(cls, model: str) -> "TiktokenTokenizer":
        return cls(encoding_for_model(model))

    def count_tokens(self, text: str) -> int:
        return len(self._encoding.encode(text, disallowed_special=()))


class HeuristicTokenizer:
    """Rough four-characters-per-token estimate for offline use."""

    def count_tokens(self, text: str) -> int:
        stripped = text.strip()
        if not stripped:
            return 0
        return max(1, len(stripped) // 4)


def calculate_tokens(codebase: CompressedCodebase, tokenizer: Tokenizer) -> int:
    """Sum path and compressed-content tokens over every file."""
    return sum(
        tokenizer.count_tokens(item.path) + tokenizer.count_tokens(item.compressed_content)
        for item in codebase.files
    )


__all__ = [
    "HeuristicTokenizer",
    "TiktokenTokenizer",
    "Tokenizer",
    "calculate_tokens",
    "encoding_for_model",
]
