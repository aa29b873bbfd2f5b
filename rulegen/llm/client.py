"""Retrying wrapper around a single provider completion call."""

from __future__ import annotations

import random
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .provider import CompletionOptions, CompletionResponse, LLMProvider, Message, Pricing
from ..errors import InvocationCancelled, NetworkError, ProviderError, RateLimitedError
from ..logging import get_logger

logger = get_logger("llm.client")

_JITTER_SPREAD = 0.25

_CLIENT_ERROR = re.compile(r"^\s*http\s*4\d\d\b", re.IGNORECASE)

_SERVER_ERROR = re.compile(
    r"http\s*5\d\d\b"
    r"|status(?:\s*code)?[\s:=]*5\d\d\b"
    r"|internal server error|bad gateway|service unavailable|gateway timeout|overloaded",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and exponential backoff parameters (delays in seconds)."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


def is_retryable(error: BaseException) -> bool:
    """Return True when ``error`` is transient and worth another attempt.

    Rate limits and network failures always qualify. Provider errors qualify
    only when their message points at a server-side (5xx) condition; every
    other failure, including client errors and configuration problems, does not.
    """
    if isinstance(error, (RateLimitedError, NetworkError)):
        return True
    if isinstance(error, ProviderError):
        if _CLIENT_ERROR.match(error.message):
            return False
        return bool(_SERVER_ERROR.search(error.message))
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    return False


def backoff_delay(
    policy: RetryPolicy,
    attempt: int,
    *,
    retry_after: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> float:
    """Delay before retry ``attempt`` (0-indexed), capped at ``max_delay``.

    A server-suggested ``retry_after`` replaces the exponential base. Jitter
    scales the result by a uniform factor in [0.75, 1.25].
    """
    if retry_after is not None:
        base = max(0.0, retry_after)
    else:
        base = min(policy.initial_delay * (2 ** attempt), policy.max_delay)
    if not policy.jitter:
        return base
    source = rng or random
    factor = source.uniform(1.0 - _JITTER_SPREAD, 1.0 + _JITTER_SPREAD)
    return base * factor


class LLMClient:
    """Invokes a provider with retry, backoff and failure classification."""

    def __init__(
        self,
        provider: LLMProvider,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
        rng: random.Random | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.provider = provider
        self.policy = policy or RetryPolicy()
        self._sleep = sleep or time.sleep
        self._rng = rng
        self._cancel_event = cancel_event

    @property
    def model(self) -> str:
        return self.provider.model

    def pricing(self) -> Pricing:
        return self.provider.pricing()

    def complete(
        self, messages: Sequence[Message], options: CompletionOptions | None = None
    ) -> CompletionResponse:
        """Run one logical completion, retrying transient failures."""
        options = options or CompletionOptions()
        policy = self.policy
        attempt = 0
        while True:
            self._check_cancelled()
            try:
                return self.provider.complete(messages, options)
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                if attempt >= policy.max_retries:
                    logger.error(
                        "Giving up on %s after %d attempts: %s",
                        self.model,
                        attempt + 1,
                        exc,
                    )
                    raise
                retry_after = exc.retry_after if isinstance(exc, RateLimitedError) else None
                delay = backoff_delay(policy, attempt, retry_after=retry_after, rng=self._rng)
                logger.warning(
                    "Retryable error from %s (attempt %d/%d): %s. Retrying in %.2fs",
                    self.model,
                    attempt + 1,
                    policy.max_attempts,
                    exc,
                    delay,
                )
                self._wait(delay)
                attempt += 1

    def _wait(self, delay: float) -> None:
        if self._cancel_event is None:
            self._sleep(delay)
            return
        if self._cancel_event.wait(delay):
            raise InvocationCancelled("Retry wait cancelled")

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise InvocationCancelled("Invocation cancelled")


__all__ = ["LLMClient", "RetryPolicy", "backoff_delay", "is_retryable"]
