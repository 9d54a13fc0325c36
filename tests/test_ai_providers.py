"""
Tests for the SDK-backed providers used by the AI proxy
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import openai
import pytest

from fantasy_ai.ai_proxy.config import ProviderConfig
from fantasy_ai.ai_proxy.providers import ClaudeProvider, GeminiProvider, OpenAIProvider
from fantasy_ai.core.errors import AIProviderError
from fantasy_ai.models.ai_models import AIMessage, AIProvider, AITool, ProxyChatRequest

CONFIG = ProviderConfig(api_key="key", model="test-model")
TOOLS = [AITool(name="get_league", description="Get league", parameters={"type": "object", "properties": {}})]


def make_request(**kwargs):
    return ProxyChatRequest(
        messages=[
            AIMessage(role="system", content="You are a fantasy expert"),
            AIMessage(role="user", content="Who wins?"),
        ],
        **kwargs,
    )


class TestOpenAIProvider:
    @pytest.fixture
    def sdk(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock()
        return client

    def test_chat_with_tool_calls(self, sdk):
        sdk.chat.completions.create.return_value = SimpleNamespace(
            choices=[
                SimpleNamespace(
                    message=SimpleNamespace(
                        content=None,
                        tool_calls=[
                            SimpleNamespace(function=SimpleNamespace(name="get_league", arguments='{"league_id": "1"}')),
                            SimpleNamespace(function=SimpleNamespace(name="get_league", arguments="{broken")),
                        ],
                    ),
                    finish_reason="tool_calls",
                )
            ],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=4, total_tokens=14),
        )
        provider = OpenAIProvider(CONFIG, client=sdk)

        response = asyncio.run(provider.chat(make_request(tools=TOOLS, temperature=0)))

        kwargs = sdk.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0
        assert kwargs["max_tokens"] == 4000
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["tools"][0]["function"]["name"] == "get_league"

        assert response.content == ""
        assert response.provider == AIProvider.OPENAI
        assert [call.parameters for call in response.tool_calls] == [{"league_id": "1"}, {}]
        assert response.finish_reason == "tool_calls"
        assert response.usage.total_tokens == 14

    def test_sdk_error(self, sdk):
        sdk.chat.completions.create.side_effect = openai.OpenAIError("rate limited")

        with pytest.raises(AIProviderError, match="OpenAI API error: rate limited"):
            asyncio.run(OpenAIProvider(CONFIG, client=sdk).chat(make_request()))

    def test_health_check(self, sdk):
        sdk.chat.completions.create.side_effect = openai.OpenAIError("bad key")

        assert asyncio.run(OpenAIProvider(CONFIG, client=sdk).is_healthy()) is False


class TestClaudeProvider:
    @pytest.fixture
    def sdk(self):
        client = MagicMock()
        client.messages.create = AsyncMock()
        return client

    def test_chat(self, sdk):
        sdk.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Checking the league. "),
                SimpleNamespace(type="tool_use", name="get_league", input={"league_id": "1"}),
            ],
            usage=SimpleNamespace(input_tokens=20, output_tokens=8),
            stop_reason="tool_use",
        )
        provider = ClaudeProvider(CONFIG, client=sdk)

        response = asyncio.run(provider.chat(make_request(tools=TOOLS, max_tokens=300)))

        kwargs = sdk.messages.create.await_args.kwargs
        assert kwargs["system"] == "You are a fantasy expert"
        assert kwargs["messages"] == [{"role": "user", "content": "Who wins?"}]
        assert kwargs["max_tokens"] == 300
        assert kwargs["tools"][0]["input_schema"] == {"type": "object", "properties": {}}

        assert response.content == "Checking the league. "
        assert response.tool_calls[0].parameters == {"league_id": "1"}
        assert response.usage.total_tokens == 28
        assert response.finish_reason == "tool_use"

    def test_sdk_error(self, sdk):
        sdk.messages.create.side_effect = anthropic.AnthropicError("overloaded")

        with pytest.raises(AIProviderError, match="Claude API error: overloaded"):
            asyncio.run(ClaudeProvider(CONFIG, client=sdk).chat(make_request()))


class TestGeminiProvider:
    @pytest.fixture
    def session(self):
        chat = MagicMock()
        chat.send_message_async = AsyncMock(return_value=SimpleNamespace(text="Gemini says start"))
        return chat

    @pytest.fixture
    def factory(self, session):
        model = MagicMock()
        model.start_chat.return_value = session
        return MagicMock(return_value=model)

    def test_chat(self, factory, session):
        request = ProxyChatRequest(
            messages=[
                AIMessage(role="system", content="Be brief"),
                AIMessage(role="user", content="Who?"),
                AIMessage(role="assistant", content="Which league?"),
                AIMessage(role="user", content="Mine"),
            ],
            tools=TOOLS,
        )

        response = asyncio.run(GeminiProvider(CONFIG, model_factory=factory).chat(request))

        args, kwargs = factory.call_args
        assert args == ("test-model",)
        assert kwargs["system_instruction"] == "Be brief"
        assert kwargs["generation_config"] == {"max_output_tokens": 4000, "temperature": 0.1}

        history = factory.return_value.start_chat.call_args.kwargs["history"]
        assert [entry["role"] for entry in history] == ["user", "model"]
        prompt = session.send_message_async.await_args.args[0]
        assert prompt.startswith("Mine")
        assert "- get_league: Get league" in prompt

        assert response.content == "Gemini says start"
        assert response.tool_calls is None
        assert response.usage.total_tokens > 0

    def test_last_message_must_be_user(self, factory):
        request = ProxyChatRequest(
            messages=[AIMessage(role="user", content="Hi"), AIMessage(role="assistant", content="Hello")]
        )

        with pytest.raises(AIProviderError, match="last message must be from user"):
            asyncio.run(GeminiProvider(CONFIG, model_factory=factory).chat(request))

    def test_sdk_error(self, factory, session):
        session.send_message_async.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(AIProviderError, match="Gemini API error: quota exceeded"):
            asyncio.run(GeminiProvider(CONFIG, model_factory=factory).chat(make_request()))
