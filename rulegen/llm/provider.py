"""Wire-neutral provider contract used by the invoker and orchestrator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence


@dataclass(frozen=True)
class Message:
    """One chat message."""

    role: str
    content: str

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)


@dataclass(frozen=True)
class CompletionOptions:
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class CompletionResponse:
    """Completion text with provider-reported token counts."""

    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    tokens_used: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tokens_used", self.prompt_tokens + self.completion_tokens)


@dataclass(frozen=True)
class Pricing:
    """Price per thousand input and output tokens, in USD."""

    input_per_1k: float = 0.0
    output_per_1k: float = 0.0


class LLMProvider(ABC):
    """Capability interface implemented by each backend adapter."""

    name: str = "provider"

    @abstractmethod
    def complete(
        self, messages: Sequence[Message], options: CompletionOptions
    ) -> CompletionResponse:
        """Perform exactly one remote completion call."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier used for requests."""

    def pricing(self) -> Pricing:
        return Pricing()


__all__ = ["CompletionOptions", "CompletionResponse", "LLMProvider", "Message", "Pricing"]
