"""Compressor contract and the whitespace compressor."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Dict

from ..errors import CompressionError
from ..languages import Language
from ..models import CompressionMethod

# Advisory ratios used for up-front cost estimates only; observed ratios are
# always computed from real sizes.
STRUCTURAL_RATIO_TARGET = 0.3
WHITESPACE_RATIO_TARGET = 0.6

_RATIO_TARGETS: Dict[CompressionMethod, float] = {
    CompressionMethod.STRUCTURAL: STRUCTURAL_RATIO_TARGET,
    CompressionMethod.WHITESPACE: WHITESPACE_RATIO_TARGET,
    CompressionMethod.NONE: 1.0,
}

_HORIZONTAL_WS = re.compile(r"[ \t]+")


class Compressor(ABC):
    """Contract for compressors that shrink one source unit."""

    method: CompressionMethod

    @abstractmethod
    def compress(self, source: str, language: Language) -> str:
        """Return compressed text or raise :class:`CompressionError`."""

    @property
    def compression_ratio(self) -> float:
        return _RATIO_TARGETS[self.method]


class WhitespaceCompressor(Compressor):
    """Normalises spacing and drops blank lines."""

    method = CompressionMethod.WHITESPACE

    def compress(self, source: str, language: Language) -> str:
        lines = []
        for raw in source.splitlines():
            line = _HORIZONTAL_WS.sub(" ", raw.strip())
            if line:
                lines.append(line)
        if not lines:
            raise CompressionError(language.display_name, "source contains only whitespace")
        return "\n".join(lines)


def ratio_target(method: CompressionMethod) -> float:
    return _RATIO_TARGETS[method]


def estimate_compressed_size(original_size: int, method: CompressionMethod) -> int:
    """Estimate a compressed size from the advisory ratio for ``method``."""
    return int(original_size * _RATIO_TARGETS[method])


__all__ = [
    "Compressor",
    "CompressionMethod",
    "STRUCTURAL_RATIO_TARGET",
    "WHITESPACE_RATIO_TARGET",
    "WhitespaceCompressor",
    "estimate_compressed_size",
    "ratio_target",
]
