"""Provider adapter for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import os
import socket
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .provider import CompletionOptions, CompletionResponse, LLMProvider, Message, Pricing
from ..errors import ConfigError, NetworkError, ProviderError, RateLimitedError
from ..logging import get_logger

logger = get_logger("llm.openai_compat")


class OpenAICompatibleProvider(LLMProvider):
    """Talks to ``{base_url}/chat/completions`` (OpenAI, Ollama, OpenRouter, ...)."""

    name = "openai-compatible"

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"
    ENV_MODEL_KEYS = ("RULEGEN_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("RULEGEN_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("RULEGEN_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        request_timeout: float = 120.0,
        pricing: Pricing | None = None,
        name: str | None = None,
    ) -> None:
        self._model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        resolved_url = base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        self.base_url = resolved_url.rstrip("/")
        self.api_key = api_key if api_key is not None else self._first_env_value(self.ENV_API_KEY_KEYS)
        if request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        self.request_timeout = request_timeout
        self._pricing = pricing or Pricing()
        if name:
            self.name = name

    @property
    def model(self) -> str:
        return self._model

    def pricing(self) -> Pricing:
        return self._pricing

    def complete(
        self, messages: Sequence[Message], options: CompletionOptions
    ) -> CompletionResponse:
        payload: Dict[str, object] = {
            "model": self._model,
            "messages": [{"role": item.role, "content": item.content} for item in messages],
        }
        if options.temperature is not None:
            payload["temperature"] = options.temperature
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        request = Request(
            f"{self.base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

        logger.debug("POST %s/chat/completions (model=%s)", self.base_url, self._model)
        try:
            with urlopen(request, timeout=self.request_timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            raise self._http_error(exc) from exc
        except URLError as exc:
            raise NetworkError(f"Connection to {self.base_url} failed: {exc.reason}") from exc
        except (socket.timeout, TimeoutError) as exc:
            raise NetworkError(
                f"Request to {self.base_url} timed out after {self.request_timeout:g}s"
            ) from exc

        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProviderError(self.name, "response was not valid JSON") from exc
        if not isinstance(body, dict):
            raise ProviderError(self.name, "response was not a JSON object")

        content = self._extract_content(body)
        if not content:
            raise ProviderError(self.name, "response contained no completion text")
        prompt_tokens, completion_tokens = self._extract_usage(body)
        return CompletionResponse(
            content=content.strip(),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

    def _http_error(self, exc: HTTPError) -> Exception:
        detail = ""
        try:
            detail = exc.read().decode("utf-8", errors="ignore").strip()
        except (OSError, AttributeError):
            detail = ""
        if exc.code == 429:
            return RateLimitedError(self.name, self._retry_after(exc))
        message = detail or str(exc.reason)
        return ProviderError(self.name, f"HTTP {exc.code}: {message}")

    @staticmethod
    def _retry_after(exc: HTTPError) -> Optional[float]:
        headers = exc.headers
        value = headers.get("Retry-After") if headers is not None else None
        if value is None:
            return None
        try:
            return max(0.0, float(value))
        except ValueError:
            return None

    @staticmethod
    def _extract_content(payload: Dict[str, object]) -> str:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    @staticmethod
    def _extract_usage(payload: Dict[str, object]) -> Tuple[int, int]:
        usage = payload.get("usage")
        if not isinstance(usage, dict):
            return 0, 0
        counts: List[int] = []
        for key in ("prompt_tokens", "completion_tokens"):
            value = usage.get(key)
            counts.append(value if isinstance(value, int) and value >= 0 else 0)
        return counts[0], counts[1]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["OpenAICompatibleProvider"]
