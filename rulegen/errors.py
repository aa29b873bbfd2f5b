"""Error taxonomy shared across rulegen components."""

from __future__ import annotations

import re
from typing import List, Optional

_REDACTION_PATTERNS = (
    (re.compile(r"(api[_-]?key[=:\s]+)[^\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(token[=:\s]+)[^\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(?i)(bearer\s+)[^\s]+"), r"\1[REDACTED]"),
    (re.compile(r"(sk-[a-zA-Z0-9]{8,})"), "[REDACTED]"),
)


def redact_sensitive_data(message: str) -> str:
    """Strip API keys and bearer tokens from provider messages."""
    result = message
    for pattern, replacement in _REDACTION_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


class RulegenError(RuntimeError):
    """Base class for all rulegen failures."""

    title = "Error"
    stage = "Running rulegen"

    def context_lines(self) -> List[str]:
        return [f"Stage: {self.stage}", f"Error: {self}"]

    def suggestions(self) -> List[str]:
        return []


class ConfigError(RulegenError):
    """Raised when configuration cannot be loaded or is inconsistent."""

    title = "Configuration error"
    stage = "Loading configuration"

    def suggestions(self) -> List[str]:
        return ["Check .rulegen.yml for typos and invalid values"]


class ValidationError(RulegenError):
    """Raised when inputs are rejected before any remote call is made."""

    title = "Validation error"
    stage = "Validating input"

    def __init__(self, message: str, suggestion: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def suggestions(self) -> List[str]:
        return [self.suggestion] if self.suggestion else []


class ChunkingError(ValidationError):
    """Raised when content cannot be split into chunks."""

    stage = "Chunking compressed codebase"


class CompressionError(RulegenError):
    """Raised when a compressor cannot produce output for a source unit."""

    title = "Compression error"

    def __init__(self, language: str, message: str) -> None:
        super().__init__(f"Compression error for {language}: {message}")
        self.language = language
        self.message = message

    @property
    def stage(self) -> str:  # type: ignore[override]
        return f"Compressing {self.language} files"


class InvocationError(RulegenError):
    """Raised when a remote completion call fails."""

    title = "LLM provider error"
    stage = "Calling the LLM provider"


class ProviderError(InvocationError):
    """Provider-reported failure; retryable only for server-side errors."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = redact_sensitive_data(message)
        super().__init__(f"LLM provider error: {provider} - {self.message}")

    @property
    def stage(self) -> str:  # type: ignore[override]
        return f"Communicating with {self.provider} LLM"


class RateLimitedError(InvocationError):
    """Raised when the provider signals rate limiting."""

    title = "Rate limit exceeded"

    def __init__(self, provider: str, retry_after: Optional[float] = None) -> None:
        self.provider = provider
        self.retry_after = retry_after
        detail = f", retry after {retry_after:g}s" if retry_after is not None else ""
        super().__init__(f"Rate limited by {provider}{detail}")

    def context_lines(self) -> List[str]:
        lines = [
            f"Stage: Analyzing codebase with {self.provider}",
            "Error: Rate limit exceeded (429)",
        ]
        if self.retry_after is not None:
            lines.append(f"Retry after: {self.retry_after:g} seconds")
        return lines

    def suggestions(self) -> List[str]:
        return ["Wait a moment and retry", "Lower the request rate or upgrade the plan"]


class NetworkError(InvocationError):
    """Raised for connection failures and timeouts."""

    title = "Network error"
    stage = "Connecting to the LLM provider"

    def suggestions(self) -> List[str]:
        return ["Check your network connection", "Verify the provider base URL"]


class TokenLimitExceededError(InvocationError):
    """Raised when a prompt is larger than the provider's context window."""

    title = "Codebase too large"
    stage = "Analyzing codebase"

    def __init__(self, tokens: int, limit: int) -> None:
        super().__init__(f"Token limit exceeded: {tokens} tokens > {limit} limit")
        self.tokens = tokens
        self.limit = limit

    def context_lines(self) -> List[str]:
        return [
            f"Stage: {self.stage}",
            f"Tokens: {self.tokens:,}",
            f"Context limit: {self.limit:,} tokens",
        ]

    def suggestions(self) -> List[str]:
        return ["Enable compression", "Reduce the chunk size so each request fits"]


class InvocationCancelled(InvocationError):
    """Raised when a retry wait is interrupted by cancellation."""

    title = "Cancelled"


class AnalysisError(RulegenError):
    """Raised when a chunk analysis or the merge call fails."""

    title = "Analysis failed"

    def __init__(
        self,
        stage: str,
        *,
        cause: BaseException,
        chunk_index: Optional[int] = None,
        total_chunks: Optional[int] = None,
    ) -> None:
        self.step = stage
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks
        self.cause = cause
        super().__init__(f"{self.describe_step()} failed: {cause}")

    def describe_step(self) -> str:
        if self.step == "merge":
            return "Merging chunk analyses"
        if self.chunk_index is None:
            return "Chunk analysis"
        if self.total_chunks:
            return f"Analysis of chunk {self.chunk_index + 1} of {self.total_chunks}"
        return f"Analysis of chunk {self.chunk_index + 1}"

    @property
    def stage(self) -> str:  # type: ignore[override]
        return self.describe_step()

    def suggestions(self) -> List[str]:
        if isinstance(self.cause, RulegenError):
            return self.cause.suggestions()
        return []


def format_error(error: BaseException, verbose: bool = False) -> str:
    """Render an error with context lines and suggestions for terminal output."""
    if isinstance(error, RulegenError):
        title = error.title
        context = error.context_lines()
        suggestions = error.suggestions()
    else:
        title = type(error).__name__
        context = [f"Error: {error}"]
        suggestions = []

    lines = ["", f"⚠ Error: {title}", "", "What happened:"]
    for index, line in enumerate(context):
        prefix = "└─" if index == len(context) - 1 else "├─"
        lines.append(f"{prefix} {line}")

    if suggestions:
        lines.append("")
        lines.append("Suggestions:")
        lines.extend(f"• {suggestion}" for suggestion in suggestions)

    cause = error.__cause__
    if verbose:
        lines.append("")
        lines.append("Debug info:")
        lines.append(repr(error))
        while cause is not None:
            lines.append("")
            lines.append("Caused by:")
            lines.append(f"  {cause}")
            cause = cause.__cause__
    elif cause is not None:
        lines.append("")
        lines.append("Cause chain omitted; render with verbose=True for details")

    return "\n".join(lines) + "\n"


__all__ = [
    "AnalysisError",
    "ChunkingError",
    "CompressionError",
    "ConfigError",
    "InvocationCancelled",
    "InvocationError",
    "NetworkError",
    "ProviderError",
    "RateLimitedError",
    "RulegenError",
    "TokenLimitExceededError",
    "ValidationError",
    "format_error",
    "redact_sensitive_data",
]
