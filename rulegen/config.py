"""Configuration loading for rulegen (.rulegen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError, ValidationError
from .llm.analysis import AnalysisOptions
from .llm.chunker import DEFAULT_CHUNK_SIZE, ChunkConfig
from .llm.client import RetryPolicy
from .llm.openai_compat import OpenAICompatibleProvider

CONFIG_FILENAME = ".rulegen.yml"

MIN_CHUNK_SIZE = 1_000
MAX_CHUNK_SIZE = 1_000_000


@dataclass
class LLMConfig:
    """Provider settings from .rulegen.yml."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: Optional[float] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass
class ChunkingConfig:
    """Token budget per chunk; ``overlap`` defaults to 10% of ``chunk_size``."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: Optional[int] = None

    def to_chunk_config(self) -> ChunkConfig:
        overlap = self.overlap if self.overlap is not None else self.chunk_size // 10
        return ChunkConfig(chunk_size=self.chunk_size, overlap_size=overlap)


@dataclass
class RetryConfig:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
        )


@dataclass
class RulegenConfig:
    """Represents the high-level settings defined in .rulegen.yml."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    compression_enabled: bool = True

    @property
    def analysis(self) -> AnalysisOptions:
        defaults = AnalysisOptions()
        return AnalysisOptions(
            max_tokens=self.llm.max_tokens if self.llm.max_tokens is not None else defaults.max_tokens,
            temperature=(
                self.llm.temperature if self.llm.temperature is not None else defaults.temperature
            ),
        )

    def create_provider(self) -> OpenAICompatibleProvider:
        """Build the reference provider; unset fields fall back to the environment."""
        kwargs: Dict[str, Any] = {
            "base_url": self.llm.base_url,
            "api_key": self.llm.api_key,
        }
        if self.llm.request_timeout is not None:
            kwargs["request_timeout"] = self.llm.request_timeout
        return OpenAICompatibleProvider(self.llm.model, **kwargs)


def load_config(config_path: Path) -> RulegenConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return RulegenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        model=_as_str(llm_data.get("model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        temperature=_as_float(llm_data.get("temperature")),
    )

    chunking_data = _as_dict(data.get("chunking"))
    chunk_size = _as_int(chunking_data.get("chunk_size"))
    chunking = ChunkingConfig(
        chunk_size=chunk_size if chunk_size is not None else DEFAULT_CHUNK_SIZE,
        overlap=_as_int(chunking_data.get("overlap")),
    )
    _validate_chunking(chunking)

    retry_data = _as_dict(data.get("retry"))
    defaults = RetryConfig()
    retry = RetryConfig(
        max_retries=_first_not_none(_as_int(retry_data.get("max_retries")), defaults.max_retries),
        initial_delay=_first_not_none(
            _as_float(retry_data.get("initial_delay")), defaults.initial_delay
        ),
        max_delay=_first_not_none(_as_float(retry_data.get("max_delay")), defaults.max_delay),
        jitter=_first_not_none(_as_bool(retry_data.get("jitter")), defaults.jitter),
    )
    if retry.max_retries < 0 or retry.initial_delay < 0 or retry.max_delay < 0:
        raise ConfigError("retry settings must not be negative")

    compression_data = _as_dict(data.get("compression"))
    compression_enabled = _as_bool(compression_data.get("enabled"))

    return RulegenConfig(
        root=root,
        llm=llm,
        chunking=chunking,
        retry=retry,
        compression_enabled=compression_enabled if compression_enabled is not None else True,
    )


def _validate_chunking(chunking: ChunkingConfig) -> None:
    size = chunking.chunk_size
    if size < MIN_CHUNK_SIZE or size > MAX_CHUNK_SIZE:
        raise ValidationError(
            f"Invalid chunk size: {size}",
            f"Use a chunk size between {MIN_CHUNK_SIZE:,} and {MAX_CHUNK_SIZE:,} tokens",
        )
    overlap = chunking.overlap
    if overlap is not None and (overlap < 1 or overlap >= size):
        raise ValidationError(
            f"Overlap size ({overlap}) must be between 1 and chunk size ({size}) exclusive",
            "Adjust chunking.overlap or increase chunking.chunk_size",
        )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _first_not_none(value: Any, default: Any) -> Any:
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.replace("_", ""))
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ChunkingConfig",
    "LLMConfig",
    "RetryConfig",
    "RulegenConfig",
    "load_config",
]
