"""Tests for token counters."""

from __future__ import annotations

import pytest

from rulegen.languages import Language
from rulegen.llm.tokenizer import HeuristicTokenizer, TiktokenTokenizer, calculate_tokens, encoding_for_model
from rulegen.models import CompressedCodebase, CompressedFile, CompressionMethod


class WordTokenizer:
    def count_tokens(self, text: str) -> int:
        return len(text.split())


def _file(path: str, content: str) -> CompressedFile:
    return CompressedFile(
        path=path,
        original_content=content,
        compressed_content=content,
        compression_method=CompressionMethod.NONE,
        original_size=len(content),
        compressed_size=len(content),
        language=Language.UNKNOWN,
    )


def test_heuristic_tokenizer_estimates_quarter_of_characters() -> None:
    tokenizer = HeuristicTokenizer()
    assert tokenizer.count_tokens("") == 0
    assert tokenizer.count_tokens("   \n") == 0
    assert tokenizer.count_tokens("ab") == 1
    assert tokenizer.count_tokens("a" * 40) == 10


@pytest.mark.parametrize(
    ("model", "encoding"),
    [
        ("gpt-4o-mini", "o200k_base"),
        ("o1-preview", "o200k_base"),
        ("gpt-4-turbo", "cl100k_base"),
        ("claude-3-5-sonnet", "cl100k_base"),
        ("llama3", "cl100k_base"),
    ],
)
def test_encoding_for_model(model: str, encoding: str) -> None:
    assert encoding_for_model(model) == encoding


def test_calculate_tokens_counts_paths_and_content() -> None:
    codebase = CompressedCodebase.from_files(
        [_file("src/a.py", "def a ( )"), _file("src/b.py", "x = 1")]
    )
    assert calculate_tokens(codebase, WordTokenizer()) == 1 + 4 + 1 + 3
    assert calculate_tokens(CompressedCodebase.from_files([]), WordTokenizer()) == 0


def test_tiktoken_tokenizer_counts_tokens() -> None:
    pytest.importorskip("tiktoken")
    try:
        tokenizer = TiktokenTokenizer.for_model("gpt-4")
    except Exception as exc:  # encoding files may be unavailable offline
        pytest.skip(f"tiktoken encoding unavailable: {exc}")
    assert tokenizer.encoding_name == "cl100k_base"
    assert tokenizer.count_tokens("") == 0
    assert 0 < tokenizer.count_tokens("Hello, world!") < 10
    assert tokenizer.count_tokens("<|endoftext|>") > 0
