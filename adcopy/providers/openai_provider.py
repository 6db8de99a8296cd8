"""OpenAI chat-completions provider.

``OPENAI_BASE_URL`` (or ``base_url``) points the client at any
OpenAI-compatible endpoint, e.g. OpenRouter.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple

import openai
from dotenv import load_dotenv
from openai import AsyncOpenAI

from adcopy.config import BudgetConfig, RetryConfig
from adcopy.providers.base import CompletionRequest
from adcopy.providers.retrying import CallBudget, RetryingProvider


class OpenAIProvider(RetryingProvider):
    name = "openai"
    status_errors = (openai.APIStatusError,)
    connection_errors = (openai.APIConnectionError,)

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 2000,
        retry_cfg: Optional[RetryConfig] = None,
        budget_cfg: Optional[BudgetConfig] = None,
        budget: Optional[CallBudget] = None,
        base_url: Optional[str] = None,
    ):
        super().__init__(retry_cfg, budget_cfg, budget)
        load_dotenv()
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "OPENAI_API_KEY not found. Copy .env.example to .env and add your key."
            )
        self.client = AsyncOpenAI(
            api_key=api_key, base_url=base_url or os.getenv("OPENAI_BASE_URL") or None
        )
        self.model = model
        self.default_max_tokens = max_tokens

    async def _send(self, request: CompletionRequest) -> Tuple[str, int, int]:
        response = await self.client.chat.completions.create(
            model=request.model or self.model,
            messages=list(request.messages),
            max_tokens=request.max_tokens or self.default_max_tokens,
            temperature=request.temperature,
        )
        text = response.choices[0].message.content or ""
        usage = response.usage
        if usage is None:
            return text, 0, 0
        return text, usage.prompt_tokens or 0, usage.completion_tokens or 0
