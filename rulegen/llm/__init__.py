"""Chunking, retrying invocation and analysis orchestration."""

from .analysis import (
    AnalysisOptions,
    AnalysisOrchestrator,
    AnalysisResult,
    ChunkResult,
    UsageTracker,
    analyze_chunked,
    merge_chunk_results,
)
from .chunker import Chunk, ChunkConfig, Chunker, chunk, chunk_codebase
from .client import LLMClient, RetryPolicy, backoff_delay, is_retryable
from .openai_compat import OpenAICompatibleProvider
from .provider import CompletionOptions, CompletionResponse, LLMProvider, Message, Pricing
from .tokenizer import HeuristicTokenizer, TiktokenTokenizer, Tokenizer, calculate_tokens

__all__ = [
    "AnalysisOptions",
    "AnalysisOrchestrator",
    "AnalysisResult",
    "Chunk",
    "ChunkConfig",
    "ChunkResult",
    "Chunker",
    "CompletionOptions",
    "CompletionResponse",
    "HeuristicTokenizer",
    "LLMClient",
    "LLMProvider",
    "Message",
    "OpenAICompatibleProvider",
    "Pricing",
    "RetryPolicy",
    "TiktokenTokenizer",
    "Tokenizer",
    "UsageTracker",
    "analyze_chunked",
    "backoff_delay",
    "calculate_tokens",
    "chunk",
    "chunk_codebase",
    "is_retryable",
    "merge_chunk_results",
]
