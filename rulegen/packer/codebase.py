"""Per-file fallback chain and codebase-level compression."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .compress import Compressor, WhitespaceCompressor
from .tree_sitter import TreeSitterCompressor
from ..errors import CompressionError
from ..logging import get_logger
from ..models import CompressedCodebase, CompressedFile, CompressionMethod, SourceFile

logger = get_logger("packer")


def compress_file(
    source_file: SourceFile,
    *,
    structural: bool = True,
    structural_compressor: Optional[Compressor] = None,
    whitespace_compressor: Optional[Compressor] = None,
) -> CompressedFile:
    """Compress one file, degrading structural -> whitespace -> none.

    This never raises for content problems: every failure is downgraded to the
    next tier and the last tier keeps the original text.
    """
    try:
        text = source_file.content.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.debug("Keeping %s uncompressed: not valid UTF-8 (%s)", source_file.path, exc)
        original = source_file.content.decode("utf-8", errors="replace")
        return _build(source_file, original, original, CompressionMethod.NONE)

    tiers: List[Tuple[CompressionMethod, Compressor]] = []
    if structural:
        tiers.append(
            (CompressionMethod.STRUCTURAL, structural_compressor or _default_structural())
        )
    tiers.append((CompressionMethod.WHITESPACE, whitespace_compressor or WhitespaceCompressor()))

    for method, compressor in tiers:
        try:
            compressed = compressor.compress(text, source_file.language)
        except CompressionError as exc:
            logger.debug("%s compression skipped for %s: %s", method.value, source_file.path, exc)
            continue
        return _build(source_file, text, compressed, method)

    return _build(source_file, text, text, CompressionMethod.NONE)


def compress_codebase(
    files: Iterable[SourceFile],
    *,
    enabled: bool = True,
    structural_compressor: Optional[Compressor] = None,
    whitespace_compressor: Optional[Compressor] = None,
) -> CompressedCodebase:
    """Compress every file in input order and aggregate the metadata."""
    if enabled and structural_compressor is None:
        structural_compressor = _default_structural()
    whitespace_compressor = whitespace_compressor or WhitespaceCompressor()

    compressed = [
        compress_file(
            item,
            structural=enabled,
            structural_compressor=structural_compressor,
            whitespace_compressor=whitespace_compressor,
        )
        for item in files
    ]
    codebase = CompressedCodebase.from_files(compressed)
    metadata = codebase.metadata
    logger.info(
        "Compressed %d files: %d -> %d bytes (ratio %.2f)",
        metadata.total_files,
        metadata.total_original_size,
        metadata.total_compressed_size,
        metadata.compression_ratio,
    )
    return codebase


def format_codebase_content(codebase: CompressedCodebase) -> str:
    """Render compressed files as one text blob with ``--- path ---`` headers."""
    parts = []
    for item in codebase.files:
        parts.append(f"--- {item.path} ---\n{item.compressed_content}\n\n")
    return "".join(parts)


def _default_structural() -> Compressor:
    return TreeSitterCompressor()


def _build(
    source_file: SourceFile, original: str, compressed: str, method: CompressionMethod
) -> CompressedFile:
    return CompressedFile(
        path=source_file.path,
        original_content=original,
        compressed_content=compressed,
        compression_method=method,
        original_size=len(source_file.content),
        compressed_size=len(compressed.encode("utf-8")),
        language=source_file.language,
    )


__all__ = ["compress_codebase", "compress_file", "format_codebase_content"]
