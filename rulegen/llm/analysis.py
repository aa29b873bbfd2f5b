"""Sequential chunk analysis followed by a synthesis call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

from .chunker import Chunk
from .client import LLMClient
from .provider import CompletionOptions, CompletionResponse, Message
from ..errors import AnalysisError, ValidationError
from ..logging import get_logger
from ..prompting.builder import PromptBuilder

logger = get_logger("llm.analysis")

STAGE_SINGLE = "single"
STAGE_CHUNK = "chunk"
STAGE_MERGE = "merge"


@dataclass(frozen=True)
class ChunkResult:
    """Analysis of one chunk with provider-reported token counts."""

    chunk_id: int
    analysis: str
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class AnalysisResult:
    """Final analysis text plus per-chunk and merge token accounting."""

    merged_analysis: str
    chunk_results: Tuple[ChunkResult, ...]
    merge_prompt_tokens: int = 0
    merge_completion_tokens: int = 0

    @property
    def total_prompt_tokens(self) -> int:
        return sum(item.prompt_tokens for item in self.chunk_results) + self.merge_prompt_tokens

    @property
    def total_completion_tokens(self) -> int:
        return (
            sum(item.completion_tokens for item in self.chunk_results)
            + self.merge_completion_tokens
        )

    @property
    def total_tokens(self) -> int:
        return self.total_prompt_tokens + self.total_completion_tokens


@dataclass(frozen=True)
class AnalysisOptions:
    max_tokens: Optional[int] = 4096
    temperature: Optional[float] = 0.3

    def completion_options(self) -> CompletionOptions:
        return CompletionOptions(max_tokens=self.max_tokens, temperature=self.temperature)

    def merge_options(self) -> CompletionOptions:
        max_tokens = self.max_tokens * 2 if self.max_tokens is not None else None
        return CompletionOptions(max_tokens=max_tokens, temperature=self.temperature)


class UsageTracker(Protocol):
    """Receives token counts once per completed remote call."""

    def record(self, stage: str, prompt_tokens: int, completion_tokens: int) -> None:
        ...


class AnalysisOrchestrator:
    """Drives per-chunk analyses strictly in order, then merges them."""

    def __init__(
        self,
        client: LLMClient,
        *,
        options: AnalysisOptions | None = None,
        prompts: PromptBuilder | None = None,
        usage_tracker: UsageTracker | None = None,
    ) -> None:
        self.client = client
        self.options = options or AnalysisOptions()
        self.prompts = prompts or PromptBuilder()
        self.usage_tracker = usage_tracker

    def analyze(self, chunks: Sequence[Chunk], prompt_template: str) -> AnalysisResult:
        if not chunks:
            raise ValidationError(
                "No chunks to analyze",
                "Ensure the codebase has content before analysis",
            )

        ordered = sorted(chunks, key=lambda item: item.id)
        total = len(ordered)

        if total == 1:
            logger.info("Analyzing single chunk (no merge required)")
            only = ordered[0]
            prompt = self.prompts.single(prompt_template, only.content)
            response = self._invoke(
                prompt, self.options.completion_options(), STAGE_SINGLE, chunk_index=0, total=1
            )
            result = ChunkResult(
                chunk_id=only.id,
                analysis=response.content,
                prompt_tokens=response.prompt_tokens,
                completion_tokens=response.completion_tokens,
            )
            return AnalysisResult(merged_analysis=response.content, chunk_results=(result,))

        logger.info("Analyzing %d chunks sequentially", total)
        results = self._analyze_chunks(ordered, prompt_template)
        response = self._merge(results)
        return AnalysisResult(
            merged_analysis=response.content,
            chunk_results=tuple(results),
            merge_prompt_tokens=response.prompt_tokens,
            merge_completion_tokens=response.completion_tokens,
        )

    def merge(self, results: Sequence[ChunkResult]) -> str:
        """Merge existing chunk analyses; a single analysis is returned unchanged."""
        if not results:
            raise ValidationError(
                "No chunk results to merge",
                "Ensure chunks were analyzed before merging",
            )
        if len(results) == 1:
            return results[0].analysis
        return self._merge(results).content

    def _analyze_chunks(self, chunks: Sequence[Chunk], prompt_template: str) -> List[ChunkResult]:
        total = len(chunks)
        options = self.options.completion_options()
        results: List[ChunkResult] = []
        for index, item in enumerate(chunks):
            logger.debug(
                "Analyzing chunk %d of %d (%d tokens)", index + 1, total, item.token_count
            )
            prompt = self.prompts.chunk(prompt_template, item.content, index + 1, total)
            response = self._invoke(prompt, options, STAGE_CHUNK, chunk_index=index, total=total)
            results.append(
                ChunkResult(
                    chunk_id=item.id,
                    analysis=response.content,
                    prompt_tokens=response.prompt_tokens,
                    completion_tokens=response.completion_tokens,
                )
            )
        return results

    def _merge(self, results: Sequence[ChunkResult]) -> CompletionResponse:
        logger.info("Merging %d chunk analyses", len(results))
        prompt = self.prompts.merge(results)
        return self._invoke(prompt, self.options.merge_options(), STAGE_MERGE)

    def _invoke(
        self,
        prompt: str,
        options: CompletionOptions,
        stage: str,
        *,
        chunk_index: Optional[int] = None,
        total: Optional[int] = None,
    ) -> CompletionResponse:
        try:
            response = self.client.complete([Message.user(prompt)], options)
        except Exception as exc:
            step = STAGE_MERGE if stage == STAGE_MERGE else STAGE_CHUNK
            raise AnalysisError(
                step, cause=exc, chunk_index=chunk_index, total_chunks=total
            ) from exc
        logger.debug(
            "%s call complete: %d prompt / %d completion tokens",
            stage,
            response.prompt_tokens,
            response.completion_tokens,
        )
        if self.usage_tracker is not None:
            self.usage_tracker.record(stage, response.prompt_tokens, response.completion_tokens)
        return response


def analyze_chunked(
    chunks: Sequence[Chunk],
    prompt_template: str,
    client: LLMClient,
    *,
    options: AnalysisOptions | None = None,
    usage_tracker: UsageTracker | None = None,
) -> AnalysisResult:
    """Analyze ``chunks`` in order and return the merged result."""
    orchestrator = AnalysisOrchestrator(client, options=options, usage_tracker=usage_tracker)
    return orchestrator.analyze(chunks, prompt_template)


def merge_chunk_results(
    results: Sequence[ChunkResult],
    client: LLMClient,
    options: AnalysisOptions | None = None,
) -> str:
    return AnalysisOrchestrator(client, options=options).merge(results)


__all__ = [
    "AnalysisOptions",
    "AnalysisOrchestrator",
    "AnalysisResult",
    "ChunkResult",
    "UsageTracker",
    "analyze_chunked",
    "merge_chunk_results",
]
