"""Anthropic (Claude) provider over the async Messages API."""
from __future__ import annotations

import os
from typing import Dict, List, Optional, Tuple

import anthropic
from dotenv import load_dotenv

from adcopy.config import BudgetConfig, RetryConfig
from adcopy.providers.base import CompletionRequest
from adcopy.providers.retrying import CallBudget, RetryingProvider


def _split_system(messages: List[Dict[str, str]]) -> Tuple[str, List[Dict[str, str]]]:
    """The Messages API takes the system prompt apart from the turns."""
    system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
    turns = [
        {"role": m["role"], "content": m["content"]}
        for m in messages
        if m.get("role") != "system"
    ]
    return system, turns


class AnthropicProvider(RetryingProvider):
    name = "anthropic"
    status_errors = (anthropic.APIStatusError,)
    connection_errors = (anthropic.APIConnectionError,)

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 2000,
        retry_cfg: Optional[RetryConfig] = None,
        budget_cfg: Optional[BudgetConfig] = None,
        budget: Optional[CallBudget] = None,
    ):
        super().__init__(retry_cfg, budget_cfg, budget)
        load_dotenv()
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY not found. Copy .env.example to .env and add your key."
            )
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model
        self.default_max_tokens = max_tokens

    async def _send(self, request: CompletionRequest) -> Tuple[str, int, int]:
        system, turns = _split_system(request.messages)
        kwargs = {
            "model": request.model or self.model,
            "max_tokens": request.max_tokens or self.default_max_tokens,
            "temperature": request.temperature,
            "messages": turns,
        }
        if system:
            kwargs["system"] = system

        message = await self.client.messages.create(**kwargs)
        text = "".join(getattr(block, "text", "") for block in message.content)
        usage = message.usage
        if usage is None:
            return text, 0, 0
        return text, usage.input_tokens or 0, usage.output_tokens or 0
