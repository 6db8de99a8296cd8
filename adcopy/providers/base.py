"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class CompletionRequest:
    provider: str
    model: str
    messages: List[Dict[str, str]] = field(default_factory=list)
    max_tokens: int = 2000
    temperature: float = 0.7


def split_model(model: str, default_provider: str = "anthropic") -> Tuple[str, str]:
    """``"anthropic:claude-x"`` → ``("anthropic", "claude-x")``.

    A bare model name is attributed to *default_provider*.
    """
    provider, sep, name = model.partition(":")
    if not sep:
        return default_provider, model
    return provider or default_provider, name or model


class BaseProvider(ABC):
    """Interface that all LLM providers must implement."""

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> str:
        """Send the chat messages and return the plain text response."""
        ...

    def stats(self) -> dict:
        return {}
