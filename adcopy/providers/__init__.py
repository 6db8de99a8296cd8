"""LLM provider package."""
from adcopy.providers.base import BaseProvider, CompletionRequest, split_model
from adcopy.providers.mock_provider import MockProvider
from adcopy.providers.retrying import BudgetExceededError, CallBudget, RetryingProvider
from adcopy.providers.router import ProviderRouter, UnknownProviderError

__all__ = [
    "BaseProvider",
    "BudgetExceededError",
    "CallBudget",
    "CompletionRequest",
    "MockProvider",
    "ProviderRouter",
    "RetryingProvider",
    "UnknownProviderError",
    "split_model",
]
