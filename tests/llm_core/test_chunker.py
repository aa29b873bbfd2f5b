"""Tests for the token-bounded chunker."""

from __future__ import annotations

import pytest

from rulegen.errors import ChunkingError, ValidationError
from rulegen.languages import Language
from rulegen.llm.chunker import Chunk, ChunkConfig, Chunker, chunk, chunk_codebase
from rulegen.models import CompressedCodebase, CompressedFile, CompressionMethod


def _codebase(files) -> CompressedCodebase:
    return CompressedCodebase.from_files(
        CompressedFile(
            path=path,
            original_content=content,
            compressed_content=content,
            compression_method=CompressionMethod.NONE,
            original_size=len(content),
            compressed_size=len(content),
            language=Language.UNKNOWN,
        )
        for path, content in files
    )


def _lines(prefix: str, count: int, words_per_line: int = 5) -> str:
    return "\n".join(
        " ".join(f"{prefix}{line}_{word}" for word in range(words_per_line)) for line in range(count)
    )


def _assert_chunk_invariants(chunks, max_tokens, tokenizer) -> None:
    assert [item.id for item in chunks] == list(range(len(chunks)))
    assert chunks[0].overlap_token_count == 0
    for item in chunks:
        assert item.content
        assert item.token_count == tokenizer.count_tokens(item.content)
        assert item.token_count <= max_tokens
    for item in chunks[1:]:
        assert item.overlap_token_count > 0


def test_chunk_config_defaults_and_validation() -> None:
    config = ChunkConfig()
    assert (config.chunk_size, config.overlap_size) == (100_000, 10_000)
    assert ChunkConfig.with_chunk_size(50_000).overlap_size == 5_000
    with pytest.raises(ChunkingError):
        ChunkConfig(chunk_size=1000, overlap_size=1000)
    with pytest.raises(ValidationError):
        ChunkConfig(chunk_size=0, overlap_size=0)
    with pytest.raises(ChunkingError):
        ChunkConfig(chunk_size=1000, overlap_size=0)
    assert ChunkConfig.with_chunk_size(5).overlap_size == 1


def test_empty_content_yields_no_chunks(word_tokenizer) -> None:
    assert chunk("", 100, word_tokenizer) == []


def test_small_content_is_a_single_chunk(word_tokenizer) -> None:
    content = "one two three\nfour five"
    chunks = chunk(content, 100, word_tokenizer)
    assert chunks == [Chunk(id=0, content=content, token_count=5, overlap_token_count=0)]


def test_content_exactly_at_budget_is_a_single_chunk(word_tokenizer) -> None:
    content = " ".join(["w"] * 50)
    chunks = chunk(content, 50, word_tokenizer)
    assert len(chunks) == 1


def test_large_content_is_split_with_overlap(word_tokenizer) -> None:
    tokenizer = word_tokenizer
    content = _lines("w", 60)
    chunks = chunk(content, 50, tokenizer)

    assert len(chunks) > 1
    _assert_chunk_invariants(chunks, 50, tokenizer)
    assert chunks[0].content.startswith("w0_0 ")
    assert chunks[-1].content.endswith("w59_4")
    # Every line survives somewhere, in order.
    for line in content.splitlines():
        assert any(line in item.content for item in chunks)


def test_chunks_prefer_line_boundaries(word_tokenizer) -> None:
    tokenizer = word_tokenizer
    content = _lines("w", 40)
    chunks = chunk(content, 23, tokenizer, overlap_tokens=5)
    for item in chunks[:-1]:
        assert item.content.endswith("\n")


def test_overlap_repeats_the_tail_of_the_previous_chunk(word_tokenizer) -> None:
    tokenizer = word_tokenizer
    content = _lines("w", 30)
    chunks = chunk(content, 40, tokenizer, overlap_tokens=10)
    for previous, current in zip(chunks, chunks[1:]):
        overlap_words = current.content.split()[: current.overlap_token_count]
        assert overlap_words
        assert previous.content.split()[-len(overlap_words) :] == overlap_words
        assert current.overlap_token_count <= 10


def test_chunks_prefer_file_boundaries(word_tokenizer) -> None:
    tokenizer = word_tokenizer
    codebase = _codebase(
        [
            ("a.txt", _lines("a", 6)),
            ("b.txt", _lines("b", 6)),
            ("c.txt", _lines("c", 6)),
        ]
    )
    chunks = chunk_codebase(codebase, ChunkConfig(chunk_size=40, overlap_size=4), tokenizer)
    assert len(chunks) > 1
    _assert_chunk_invariants(chunks, 40, tokenizer)
    assert chunks[0].content.startswith("--- a.txt ---")
    assert chunks[0].content.endswith("\n\n")
    assert "--- b.txt ---" in chunks[1].content


def test_single_oversized_line_is_force_split(word_tokenizer) -> None:
    tokenizer = word_tokenizer
    content = " ".join(f"t{index}" for index in range(200))
    chunks = chunk(content, 30, tokenizer)
    assert len(chunks) > 1
    _assert_chunk_invariants(chunks, 30, tokenizer)
    assert chunks[-1].content.endswith("t199")


def test_multibyte_characters_are_never_split(char_tokenizer) -> None:
    tokenizer = char_tokenizer
    content = "héllo wörld ✓ ünïcödé 🎉\n" * 20
    chunks = chunk(content, 37, tokenizer, overlap_tokens=5)
    assert len(chunks) > 1
    _assert_chunk_invariants(chunks, 37, tokenizer)
    for item in chunks:
        item.content.encode("utf-8")
    assert chunks[-1].content.endswith("🎉\n")


def test_overlap_must_be_smaller_than_budget(word_tokenizer) -> None:
    with pytest.raises(ChunkingError):
        chunk("a b c", 10, word_tokenizer, overlap_tokens=10)
    with pytest.raises(ChunkingError):
        chunk("a b c", 0, word_tokenizer)
    with pytest.raises(ChunkingError):
        chunk("a b c", 10, word_tokenizer, overlap_tokens=0)


def test_small_budget_still_carries_overlap(word_tokenizer) -> None:
    content = " ".join(f"w{index}" for index in range(40))
    chunks = chunk(content, 8, word_tokenizer)

    assert len(chunks) > 1
    _assert_chunk_invariants(chunks, 8, word_tokenizer)
    assert all(item.overlap_token_count == 1 for item in chunks[1:])
    assert chunks[-1].content.endswith("w39")


def test_chunk_codebase_rejects_empty_codebase(word_tokenizer) -> None:
    with pytest.raises(ValidationError) as excinfo:
        chunk_codebase(_codebase([]), ChunkConfig(), word_tokenizer)
    assert "empty codebase" in str(excinfo.value)


def test_chunk_codebase_single_chunk_contains_all_files(word_tokenizer) -> None:
    codebase = _codebase([("a.py", "def a(): ..."), ("b.py", "def b(): ...")])
    chunks = chunk_codebase(codebase, ChunkConfig(), word_tokenizer)
    assert len(chunks) == 1
    assert chunks[0].content == "--- a.py ---\ndef a(): ...\n\n--- b.py ---\ndef b(): ...\n\n"


def test_chunker_class_uses_its_config(word_tokenizer) -> None:
    chunker = Chunker(ChunkConfig(chunk_size=20, overlap_size=3), word_tokenizer)
    assert chunker.max_tokens == 20
    chunks = chunker.chunk(_lines("w", 10))
    assert len(chunks) > 1
    _assert_chunk_invariants(chunks, 20, word_tokenizer)
