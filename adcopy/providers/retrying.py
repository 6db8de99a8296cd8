"""Retry loop and per-run call budget shared by the SDK-backed providers."""
from __future__ import annotations

import asyncio
import logging
import random
from abc import abstractmethod
from typing import Optional, Tuple, Type

from adcopy.config import BudgetConfig, RetryConfig
from adcopy.providers.base import BaseProvider, CompletionRequest

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 529})


class BudgetExceededError(RuntimeError):
    """Raised when max_calls_per_run has been reached."""


class CallBudget:
    """Successful LLM calls allowed in one run; 0 means unlimited.

    One instance can be handed to several providers so the limit covers
    the whole run rather than each provider separately.
    """

    def __init__(self, cfg: Optional[BudgetConfig] = None):
        self.max_calls = (cfg or BudgetConfig()).max_calls_per_run
        self.used = 0

    def check(self, provider: str) -> None:
        if self.max_calls and self.used >= self.max_calls:
            raise BudgetExceededError(f"{provider}: max_calls_per_run={self.max_calls} reached")

    def record(self) -> None:
        self.used += 1


class RetryingProvider(BaseProvider):
    """Base for providers that call a vendor SDK over HTTP.

    Subclasses implement :meth:`_send` and list the SDK's status and
    connection error classes. HTTP 429/5xx answers and connection failures
    are retried with exponential back-off and jitter, honouring
    ``Retry-After``; anything else propagates at once. Only successful
    calls are counted against the budget.
    """

    status_errors: Tuple[Type[Exception], ...] = ()
    connection_errors: Tuple[Type[Exception], ...] = ()

    def __init__(
        self,
        retry_cfg: Optional[RetryConfig] = None,
        budget_cfg: Optional[BudgetConfig] = None,
        budget: Optional[CallBudget] = None,
    ):
        self._retry_cfg = retry_cfg or RetryConfig()
        self.budget = budget or CallBudget(budget_cfg)
        self.call_count = 0
        self.retry_count = 0
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    @abstractmethod
    async def _send(self, request: CompletionRequest) -> Tuple[str, int, int]:
        """One API call: ``(text, input_tokens, output_tokens)``."""

    async def complete(self, request: CompletionRequest) -> str:
        self.budget.check(self.name)
        max_retries = self._retry_cfg.max_api_retries
        attempt = 0
        while True:
            try:
                text, input_tokens, output_tokens = await self._send(request)
            except self.status_errors as exc:
                status = getattr(exc, "status_code", None)
                if status not in RETRYABLE_STATUS_CODES or attempt >= max_retries:
                    raise
                wait = self._wait_seconds(exc, attempt)
                reason = f"HTTP {status}"
            except self.connection_errors:
                if attempt >= max_retries:
                    raise
                wait = self._backoff_secs(attempt)
                reason = "connection error"
            else:
                self.budget.record()
                self.call_count += 1
                self.total_input_tokens += input_tokens
                self.total_output_tokens += output_tokens
                return text

            attempt += 1
            self.retry_count += 1
            logger.warning(
                "%s: %s, retrying in %.1fs (%d/%d)", self.name, reason, wait, attempt, max_retries
            )
            await asyncio.sleep(wait)

    def stats(self) -> dict:
        return {
            "call_count": self.call_count,
            "retry_count": self.retry_count,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens,
        }

    def _wait_seconds(self, exc: Exception, attempt: int) -> float:
        """``Retry-After`` when the response carries a usable one, else back-off."""
        response = getattr(exc, "response", None)
        headers = getattr(response, "headers", None) or {}
        try:
            return max(0.0, float(headers["retry-after"]))
        except (KeyError, TypeError, ValueError):
            return self._backoff_secs(attempt)

    def _backoff_secs(self, attempt: int) -> float:
        base = self._retry_cfg.backoff_base_seconds
        cap = self._retry_cfg.backoff_max_seconds
        return min(base * (2 ** attempt) + random.uniform(0.0, 1.0), cap)
