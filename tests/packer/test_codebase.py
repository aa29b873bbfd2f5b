"""Tests for the per-file fallback chain and codebase aggregation."""

from __future__ import annotations

import logging
from typing import List

from rulegen.errors import CompressionError
from rulegen.languages import Language
from rulegen.models import CodebaseMetadata, CompressionMethod, SourceFile
from rulegen.packer.codebase import compress_codebase, compress_file, format_codebase_content
from rulegen.packer.compress import Compressor


class _StubStructural(Compressor):
    method = CompressionMethod.STRUCTURAL

    def __init__(self, fail_for: tuple = ()) -> None:
        self.fail_for = fail_for
        self.calls: List[str] = []

    def compress(self, source: str, language: Language) -> str:
        self.calls.append(source)
        if language in self.fail_for:
            raise CompressionError(language.display_name, "source contains syntax errors")
        return "sig"


def _source(path: str, text: str, language: Language = Language.PYTHON) -> SourceFile:
    return SourceFile(path=path, content=text.encode("utf-8"), language=language)


def test_compress_file_prefers_structural() -> None:
    stub = _StubStructural()
    result = compress_file(_source("a.py", "def a():\n    return 1\n"), structural_compressor=stub)
    assert result.compression_method is CompressionMethod.STRUCTURAL
    assert result.compressed_content == "sig"
    assert result.original_content == "def a():\n    return 1\n"
    assert result.original_size == len("def a():\n    return 1\n")
    assert result.compressed_size == 3
    assert result.language is Language.PYTHON


def test_compress_file_falls_back_to_whitespace(caplog) -> None:
    stub = _StubStructural(fail_for=(Language.PYTHON,))
    caplog.set_level(logging.DEBUG, logger="rulegen")
    result = compress_file(_source("b.py", "def b(:\n\n    pass\n"), structural_compressor=stub)
    assert result.compression_method is CompressionMethod.WHITESPACE
    assert result.compressed_content == "def b(:\npass"
    assert "syntax errors" in caplog.text


def test_compress_file_keeps_original_when_every_tier_fails() -> None:
    stub = _StubStructural(fail_for=(Language.PYTHON,))
    result = compress_file(_source("blank.py", "   \n\n"), structural_compressor=stub)
    assert result.compression_method is CompressionMethod.NONE
    assert result.compressed_content == "   \n\n"
    assert result.compressed_size == result.original_size


def test_compress_file_skips_structural_when_disabled() -> None:
    stub = _StubStructural()
    result = compress_file(
        _source("c.py", "x  =  1\n"), structural=False, structural_compressor=stub
    )
    assert stub.calls == []
    assert result.compression_method is CompressionMethod.WHITESPACE
    assert result.compressed_content == "x = 1"


def test_compress_file_undecodable_bytes_are_kept() -> None:
    stub = _StubStructural()
    source = SourceFile(path="bin.dat", content=b"ok\xff\xfe", language=Language.UNKNOWN)
    result = compress_file(source, structural_compressor=stub)
    assert stub.calls == []
    assert result.compression_method is CompressionMethod.NONE
    assert result.original_content.startswith("ok")
    assert "�" in result.compressed_content
    assert result.original_size == 4


def test_compress_codebase_aggregates_in_order() -> None:
    stub = _StubStructural(fail_for=(Language.RUST,))
    files = [
        _source("src/a.py", "def a():\n    pass\n"),
        _source("src/b.rs", "fn   b() {}\n", Language.RUST),
        _source("src/c.py", "def c():\n    pass\n"),
    ]
    codebase = compress_codebase(files, structural_compressor=stub)

    assert [item.path for item in codebase.files] == ["src/a.py", "src/b.rs", "src/c.py"]
    assert [item.compression_method for item in codebase.files] == [
        CompressionMethod.STRUCTURAL,
        CompressionMethod.WHITESPACE,
        CompressionMethod.STRUCTURAL,
    ]
    metadata = codebase.metadata
    assert metadata.total_files == 3
    assert metadata.languages == {Language.PYTHON: 2, Language.RUST: 1}
    assert metadata.total_original_size == sum(len(f.content) for f in files)
    assert metadata.total_compressed_size == 3 + len("fn b() {}") + 3
    assert metadata.compression_ratio == metadata.total_compressed_size / metadata.total_original_size
    assert len(codebase) == 3


def test_compress_codebase_disabled_uses_whitespace_only() -> None:
    codebase = compress_codebase([_source("a.py", "a  =  1\n")], enabled=False)
    assert codebase.files[0].compression_method is CompressionMethod.WHITESPACE


def test_metadata_ratio_is_zero_for_empty_input() -> None:
    codebase = compress_codebase([], enabled=False)
    assert codebase.metadata.total_files == 0
    assert codebase.metadata.compression_ratio == 0.0
    assert CodebaseMetadata.calculate_compression_ratio(0, 10) == 0.0


def test_with_files_recomputes_metadata() -> None:
    codebase = compress_codebase(
        [_source("a.py", "a = 1\n"), _source("b.py", "b = 2\n")], enabled=False
    )
    smaller = codebase.with_files(codebase.files[:1])
    assert smaller.metadata.total_files == 1
    assert codebase.metadata.total_files == 2


def test_format_codebase_content_uses_path_headers() -> None:
    codebase = compress_codebase(
        [_source("a.py", "a = 1\n"), _source("b.py", "b = 2\n")], enabled=False
    )
    assert format_codebase_content(codebase) == "--- a.py ---\na = 1\n\n--- b.py ---\nb = 2\n\n"
