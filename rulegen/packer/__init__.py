"""Compression of source files into a token-efficient skeleton."""

from .codebase import compress_codebase, compress_file, format_codebase_content
from .compress import (
    STRUCTURAL_RATIO_TARGET,
    WHITESPACE_RATIO_TARGET,
    Compressor,
    WhitespaceCompressor,
    estimate_compressed_size,
)
from .strategies import ExtractionRegistry, ExtractionStrategy, default_registry
from .tree_sitter import TREE_SITTER_AVAILABLE, TreeSitterCompressor

__all__ = [
    "Compressor",
    "ExtractionRegistry",
    "ExtractionStrategy",
    "STRUCTURAL_RATIO_TARGET",
    "TREE_SITTER_AVAILABLE",
    "TreeSitterCompressor",
    "WHITESPACE_RATIO_TARGET",
    "WhitespaceCompressor",
    "compress_codebase",
    "compress_file",
    "default_registry",
    "estimate_compressed_size",
    "format_codebase_content",
]
