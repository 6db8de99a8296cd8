"""Tests for the mock provider, the provider router and model-name parsing."""

from __future__ import annotations

import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from adcopy.providers import (
    CompletionRequest,
    MockProvider,
    ProviderRouter,
    UnknownProviderError,
    split_model,
)
from adcopy.providers.anthropic_provider import AnthropicProvider
from adcopy.providers.openai_provider import OpenAIProvider
from adcopy.validator import ResponseValidator

pytestmark = pytest.mark.anyio


def _request(provider: str = "mock", model: str = "test") -> CompletionRequest:
    return CompletionRequest(provider=provider, model=model, messages=[])


class TestSplitModel:
    async def test_prefixed(self):
        assert split_model("anthropic:claude-x") == ("anthropic", "claude-x")

    async def test_bare_name_uses_default(self):
        assert split_model("claude-x") == ("anthropic", "claude-x")
        assert split_model("claude-x", "mock") == ("mock", "claude-x")

    async def test_only_first_colon_splits(self):
        assert split_model("openai:ft:gpt:abc") == ("openai", "ft:gpt:abc")

    async def test_empty_parts(self):
        assert split_model(":claude-x") == ("anthropic", "claude-x")


class TestMockProvider:
    async def test_default_response_passes_strict_validation(self):
        raw = await MockProvider().complete(_request())
        result = ResponseValidator().validate_and_correct(raw)
        assert result.is_valid
        assert result.errors == []

    async def test_counts_are_configurable(self):
        raw = await MockProvider(num_titles=5, num_descriptions=2).complete(_request())
        data = json.loads(raw)
        assert len(data["titles"]) == 5
        assert len(data["descriptions"]) == 2

    async def test_seed_is_deterministic(self):
        a = await MockProvider(seed=7).complete(_request())
        b = await MockProvider(seed=7).complete(_request())
        assert a == b

    async def test_scripted_responses_come_first(self):
        mock = MockProvider(responses=["pas du json", '{"titles": []}'])
        assert await mock.complete(_request()) == "pas du json"
        assert await mock.complete(_request()) == '{"titles": []}'
        assert "titles" in json.loads(await mock.complete(_request()))

    async def test_requests_are_recorded(self):
        mock = MockProvider()
        await mock.complete(_request(model="a"))
        await mock.complete(_request(model="b"))
        assert [r.model for r in mock.requests] == ["a", "b"]
        assert mock.stats()["call_count"] == 2


class TestRouter:
    async def test_routes_by_provider_name(self):
        a = MockProvider(responses=["from a"])
        b = MockProvider(responses=["from b"])
        router = ProviderRouter({"a": a, "b": b})
        assert await router.complete(_request("b")) == "from b"
        assert await router.complete(_request("a")) == "from a"

    async def test_unknown_provider(self):
        router = ProviderRouter({"a": MockProvider()})
        with pytest.raises(UnknownProviderError, match="openai"):
            await router.complete(_request("openai"))

    async def test_fallback(self):
        fallback = MockProvider(responses=["fallback"])
        router = ProviderRouter(fallback=fallback)
        assert await router.complete(_request("anything")) == "fallback"

    async def test_register(self):
        router = ProviderRouter()
        mock = MockProvider()
        router.register("mock", mock)
        assert router.resolve("mock") is mock

    async def test_stats_per_provider(self):
        mock = MockProvider()
        router = ProviderRouter({"mock": mock})
        await router.complete(_request())
        assert router.stats() == {"mock": mock.stats()}


class TestRouterWithSdkProviders:
    def _router(self):
        env = {"ANTHROPIC_API_KEY": "sk-ant-test", "OPENAI_API_KEY": "sk-test"}
        with patch.dict(os.environ, env):
            with patch("anthropic.AsyncAnthropic"):
                claude = AnthropicProvider()
            with patch("adcopy.providers.openai_provider.AsyncOpenAI"):
                gpt = OpenAIProvider()
        claude.client.messages.create = AsyncMock()
        gpt.client.chat.completions.create = AsyncMock()
        return ProviderRouter({"anthropic": claude, "openai": gpt}), claude, gpt

    async def test_openai_prefix_reaches_openai_client(self):
        router, claude, gpt = self._router()
        response = MagicMock(usage=None)
        response.choices = [MagicMock()]
        response.choices[0].message.content = "depuis openai"
        gpt.client.chat.completions.create.return_value = response

        request = CompletionRequest(
            provider="openai", model="gpt-4o", messages=[{"role": "user", "content": "x"}]
        )
        assert await router.complete(request) == "depuis openai"
        claude.client.messages.create.assert_not_called()
        assert router.stats()["openai"]["call_count"] == 1
        assert router.stats()["anthropic"]["call_count"] == 0
