from __future__ import annotations

from typing import Callable

import pytest

from rulegen.languages import Language
from rulegen.models import SourceFile


class WordTokenizer:
    """Counts whitespace-separated words so chunk sizes are predictable."""

    def count_tokens(self, text: str) -> int:
        return len(text.split())


@pytest.fixture
def word_tokenizer() -> WordTokenizer:
    return WordTokenizer()


@pytest.fixture
def make_source() -> Callable[..., SourceFile]:
    """Build SourceFile values from text, inferring the language from the path."""

    def factory(path: str, text: str, language: Language | None = None) -> SourceFile:
        return SourceFile(
            path=path,
            content=text.encode("utf-8"),
            language=language if language is not None else Language.from_path(path),
        )

    return factory


class CharTokenizer:
    """One token per code point."""

    def count_tokens(self, text: str) -> int:
        return len(text)


@pytest.fixture
def char_tokenizer() -> CharTokenizer:
    return CharTokenizer()
