"""End-to-end flow: compress, chunk, analyze."""

from __future__ import annotations

import threading
from typing import Iterable, List, Optional

from .config import RulegenConfig
from .errors import ValidationError
from .llm.analysis import AnalysisResult, UsageTracker, analyze_chunked
from .llm.chunker import Chunk, chunk_codebase
from .llm.client import LLMClient
from .llm.tokenizer import TiktokenTokenizer, Tokenizer
from .logging import get_logger
from .models import CompressedCodebase, SourceFile
from .packer.codebase import compress_codebase
from .packer.compress import Compressor


class Pipeline:
    """Coordinates one analysis run over files supplied by an upstream walker."""

    def __init__(
        self,
        config: RulegenConfig,
        *,
        client: LLMClient | None = None,
        tokenizer: Tokenizer | None = None,
        structural_compressor: Compressor | None = None,
        usage_tracker: UsageTracker | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.client = client or LLMClient(
            config.create_provider(), config.retry.to_policy(), cancel_event=cancel_event
        )
        self._tokenizer = tokenizer
        self.structural_compressor = structural_compressor
        self.usage_tracker = usage_tracker
        self.logger = get_logger("pipeline")

    @property
    def tokenizer(self) -> Tokenizer:
        """Token counter for chunk budgets; BPE counts for the client's model by default."""
        if self._tokenizer is None:
            self._tokenizer = TiktokenTokenizer.for_model(self.client.model)
        return self._tokenizer

    def compress(self, files: Iterable[SourceFile]) -> CompressedCodebase:
        return compress_codebase(
            files,
            enabled=self.config.compression_enabled,
            structural_compressor=self.structural_compressor,
        )

    def chunk(self, codebase: CompressedCodebase) -> List[Chunk]:
        return chunk_codebase(codebase, self.config.chunking.to_chunk_config(), self.tokenizer)

    def run(self, files: Iterable[SourceFile], prompt_template: str) -> AnalysisResult:
        """Analyze ``files`` and return the merged analysis."""
        if not prompt_template.strip():
            raise ValidationError("Prompt template is empty", "Provide analysis instructions")
        codebase = self.compress(files)
        chunks = self.chunk(codebase)
        self.logger.info("Starting analysis with %s (%d chunk(s))", self.client.model, len(chunks))
        result = analyze_chunked(
            chunks,
            prompt_template,
            self.client,
            options=self.config.analysis,
            usage_tracker=self.usage_tracker,
        )
        self.logger.info(
            "Analysis complete: %d prompt / %d completion tokens",
            result.total_prompt_tokens,
            result.total_completion_tokens,
        )
        return result


def run_pipeline(
    files: Iterable[SourceFile],
    prompt_template: str,
    config: RulegenConfig,
    *,
    client: Optional[LLMClient] = None,
    tokenizer: Optional[Tokenizer] = None,
) -> AnalysisResult:
    return Pipeline(config, client=client, tokenizer=tokenizer).run(files, prompt_template)


__all__ = ["Pipeline", "run_pipeline"]
