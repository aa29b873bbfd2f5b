"""Token-bounded chunking of the compressed codebase.

Content that fits the budget becomes a single chunk. Larger content is split
into ordered chunks whose token counts stay within ``max_tokens``; each chunk
after the first starts with an overlap window copied from the end of the
preceding content so that context around a split survives in both neighbours.

Offsets are code points of a ``str``, so a split never lands inside a
multi-byte character. Split points prefer a ``--- path ---`` file header,
then a line break, and only cut mid-line when the window holds neither.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .tokenizer import HeuristicTokenizer, Tokenizer
from ..errors import ChunkingError
from ..logging import get_logger
from ..models import CompressedCodebase
from ..packer.codebase import format_codebase_content

logger = get_logger("llm.chunker")

DEFAULT_CHUNK_SIZE = 100_000
DEFAULT_OVERLAP_SIZE = 10_000

_FILE_BOUNDARY = "\n--- "


@dataclass(frozen=True)
class ChunkConfig:
    """Chunk budget in tokens and the overlap carried between chunks."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap_size: int = DEFAULT_OVERLAP_SIZE

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ChunkingError(
                f"Chunk size must be positive (got {self.chunk_size})",
                "Set chunk_size to a positive number of tokens",
            )
        _validate_overlap(self.overlap_size, self.chunk_size)

    @classmethod
    def with_chunk_size(cls, chunk_size: int) -> "ChunkConfig":
        """Build a config with a 10% overlap of at least one token."""
        return cls(chunk_size=chunk_size, overlap_size=max(1, chunk_size // 10))


@dataclass(frozen=True)
class Chunk:
    """One ordered segment of the codebase prepared for a single completion."""

    id: int
    content: str
    token_count: int
    overlap_token_count: int = 0


def chunk(
    content: str,
    max_tokens: int,
    tokenizer: Tokenizer,
    *,
    overlap_tokens: Optional[int] = None,
) -> List[Chunk]:
    """Split ``content`` into chunks of at most ``max_tokens`` tokens.

    ``overlap_tokens`` defaults to a tenth of ``max_tokens`` and is never
    less than one token. Empty content yields no chunks; callers decide
    whether that is an error.
    """
    if max_tokens < 1:
        raise ChunkingError(f"max_tokens must be positive (got {max_tokens})")
    if overlap_tokens is not None:
        _validate_overlap(overlap_tokens, max_tokens)

    if not content:
        return []

    total = tokenizer.count_tokens(content)
    if total <= max_tokens:
        return [Chunk(id=0, content=content, token_count=total, overlap_token_count=0)]

    overlap = max(1, max_tokens // 10) if overlap_tokens is None else overlap_tokens
    _validate_overlap(overlap, max_tokens)

    chunks: List[Chunk] = []
    start = 0
    while start < len(content):
        window_start = start
        if chunks:
            window_start = _overlap_start(content, start, overlap, tokenizer)
        end = _chunk_end(content, window_start, start, max_tokens, tokenizer)
        text = content[window_start:end]
        overlap_count = tokenizer.count_tokens(content[window_start:start]) if window_start < start else 0
        chunks.append(
            Chunk(
                id=len(chunks),
                content=text,
                token_count=tokenizer.count_tokens(text),
                overlap_token_count=overlap_count,
            )
        )
        start = end

    logger.debug("Split %d tokens into %d chunks (max %d)", total, len(chunks), max_tokens)
    return chunks


class Chunker:
    """Holds a chunk configuration and tokenizer for repeated use."""

    def __init__(self, config: ChunkConfig | None = None, tokenizer: Tokenizer | None = None) -> None:
        self.config = config or ChunkConfig()
        self.tokenizer = tokenizer or HeuristicTokenizer()

    @property
    def max_tokens(self) -> int:
        return self.config.chunk_size

    def chunk(self, content: str) -> List[Chunk]:
        return chunk(
            content,
            self.config.chunk_size,
            self.tokenizer,
            overlap_tokens=self.config.overlap_size,
        )

    def chunk_codebase(self, codebase: CompressedCodebase) -> List[Chunk]:
        return chunk_codebase(codebase, self.config, self.tokenizer)


def chunk_codebase(
    codebase: CompressedCodebase,
    config: ChunkConfig | None = None,
    tokenizer: Tokenizer | None = None,
) -> List[Chunk]:
    """Format a compressed codebase and split it into chunks."""
    if not codebase.files:
        raise ChunkingError(
            "Cannot chunk an empty codebase",
            "Check that the input contains at least one source file",
        )
    config = config or ChunkConfig()
    tokenizer = tokenizer or HeuristicTokenizer()
    content = format_codebase_content(codebase)
    chunks = chunk(content, config.chunk_size, tokenizer, overlap_tokens=config.overlap_size)
    logger.info("Prepared %d chunk(s) from %d files", len(chunks), len(codebase.files))
    return chunks


def _validate_overlap(overlap: int, size: int) -> None:
    if overlap < 1:
        raise ChunkingError(
            f"Overlap size must be at least one token (got {overlap})",
            "Set overlap_size to at least 1",
        )
    if overlap >= size:
        raise ChunkingError(
            f"Overlap size ({overlap}) must be less than chunk size ({size})",
            "Reduce overlap_size or increase chunk_size",
        )


def _chunk_end(
    content: str, window_start: int, start: int, max_tokens: int, tokenizer: Tokenizer
) -> int:
    """Return where the new content of the chunk beginning at ``window_start`` ends."""
    length = len(content)
    if tokenizer.count_tokens(content[window_start:]) <= max_tokens:
        return length

    def fits(end: int) -> bool:
        return tokenizer.count_tokens(content[window_start:end]) <= max_tokens

    # Exponential probe, then binary search between the last fit and first miss.
    best = start
    step = 1
    probe = start + step
    while probe < length and fits(probe):
        best = probe
        step *= 2
        probe = start + step
    miss = min(probe, length)
    while miss - best > 1:
        middle = (best + miss) // 2
        if fits(middle):
            best = middle
        else:
            miss = middle

    if best <= start:
        # A single character already overflows the budget; force progress.
        return start + 1

    header = content.rfind(_FILE_BOUNDARY, start, best)
    if header != -1 and header + 1 > start + (best - start) // 2:
        return header + 1

    newline = content.rfind("\n", start, best)
    if newline != -1:
        return newline + 1

    return best


def _overlap_start(content: str, start: int, budget: int, tokenizer: Tokenizer) -> int:
    """Return the start of the longest suffix of ``content[:start]`` within ``budget``."""
    if budget <= 0 or start == 0:
        return start

    def fits(position: int) -> bool:
        return tokenizer.count_tokens(content[position:start]) <= budget

    best = start
    step = 1
    probe = start - step
    while probe > 0 and fits(probe):
        best = probe
        step *= 2
        probe = start - step
    miss = max(probe, 0)
    if miss == 0 and fits(0):
        best = 0
    else:
        while best - miss > 1:
            middle = (best + miss) // 2
            if fits(middle):
                best = middle
            else:
                miss = middle

    # Prefer starting the overlap at a line start when that keeps it non-empty.
    if best > 0 and content[best - 1] != "\n":
        newline = content.find("\n", best, start)
        if newline != -1 and newline + 1 < start:
            if tokenizer.count_tokens(content[newline + 1 : start]) > 0:
                best = newline + 1

    if tokenizer.count_tokens(content[best:start]) == 0:
        best = _last_token_start(content, best, start, budget, tokenizer)
    return best


def _last_token_start(
    content: str, floor: int, start: int, budget: int, tokenizer: Tokenizer
) -> int:
    """Walk back from ``start`` to include at least one token when possible."""
    index = start - 1
    while index >= 0 and content[index].isspace():
        index -= 1
    if index < 0:
        return floor
    word_start = index
    while word_start > 0 and not content[word_start - 1].isspace():
        word_start -= 1
    if tokenizer.count_tokens(content[word_start:start]) <= budget:
        return word_start
    return index


__all__ = [
    "Chunk",
    "ChunkConfig",
    "Chunker",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_OVERLAP_SIZE",
    "chunk",
    "chunk_codebase",
]
