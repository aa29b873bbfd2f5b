"""Core data models shared across rulegen components."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Tuple

from .languages import Language


class CompressionMethod(str, Enum):
    """How a file's compressed content was produced."""

    STRUCTURAL = "structural"
    WHITESPACE = "whitespace"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SourceFile:
    """A file handed over by the upstream walker."""

    path: str
    content: bytes
    language: Language = Language.UNKNOWN


@dataclass(frozen=True)
class CompressedFile:
    """One input file together with its compressed rendition."""

    path: str
    original_content: str
    compressed_content: str
    compression_method: CompressionMethod
    original_size: int
    compressed_size: int
    language: Language


@dataclass(frozen=True)
class CodebaseMetadata:
    """Aggregate figures derived from a set of compressed files."""

    total_files: int
    total_original_size: int
    total_compressed_size: int
    languages: Dict[Language, int] = field(default_factory=dict)
    compression_ratio: float = 0.0

    @staticmethod
    def calculate_compression_ratio(original_size: int, compressed_size: int) -> float:
        if original_size == 0:
            return 0.0
        return compressed_size / original_size

    @classmethod
    def from_files(cls, files: Iterable[CompressedFile]) -> "CodebaseMetadata":
        files = list(files)
        original = sum(item.original_size for item in files)
        compressed = sum(item.compressed_size for item in files)
        counts = Counter(item.language for item in files)
        return cls(
            total_files=len(files),
            total_original_size=original,
            total_compressed_size=compressed,
            languages=dict(counts),
            compression_ratio=cls.calculate_compression_ratio(original, compressed),
        )


@dataclass(frozen=True)
class CompressedCodebase:
    """Ordered compressed files plus metadata recomputed from them."""

    files: Tuple[CompressedFile, ...]
    metadata: CodebaseMetadata

    @classmethod
    def from_files(cls, files: Iterable[CompressedFile]) -> "CompressedCodebase":
        ordered = tuple(files)
        return cls(files=ordered, metadata=CodebaseMetadata.from_files(ordered))

    def with_files(self, files: Iterable[CompressedFile]) -> "CompressedCodebase":
        return CompressedCodebase.from_files(files)

    def __len__(self) -> int:
        return len(self.files)
