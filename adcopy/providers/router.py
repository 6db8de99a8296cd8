"""Dispatch completion requests to a provider by name."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from adcopy.providers.base import BaseProvider, CompletionRequest

logger = logging.getLogger(__name__)


class UnknownProviderError(LookupError):
    """No provider is registered under the requested name."""


class ProviderRouter(BaseProvider):
    """Routes on ``request.provider``; ``fallback`` serves every unknown name."""

    name = "router"

    def __init__(
        self,
        providers: Optional[Dict[str, BaseProvider]] = None,
        fallback: Optional[BaseProvider] = None,
    ):
        self.providers: Dict[str, BaseProvider] = dict(providers or {})
        self.fallback = fallback

    def register(self, name: str, provider: BaseProvider) -> None:
        self.providers[name] = provider

    def resolve(self, name: str) -> BaseProvider:
        provider = self.providers.get(name) or self.fallback
        if provider is None:
            raise UnknownProviderError(
                f"no LLM provider registered for '{name}' "
                f"(known: {', '.join(sorted(self.providers)) or 'none'})"
            )
        return provider

    async def complete(self, request: CompletionRequest) -> str:
        provider = self.resolve(request.provider)
        logger.debug("routing %s:%s", request.provider, request.model)
        return await provider.complete(request)

    def stats(self) -> dict:
        return {name: p.stats() for name, p in self.providers.items()}
