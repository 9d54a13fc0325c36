"""
SDK-backed chat providers used by the AI proxy.

Unlike the backend's AIClient these go through the vendor SDKs and
support tool calling, which the proxy needs for MCP tools.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import math

import anthropic
import google.generativeai as genai
import openai

from fantasy_ai.ai_proxy.config import ProviderConfig
from fantasy_ai.core.errors import AIProviderError
from fantasy_ai.models.ai_models import (
    AIProvider,
    AIToolCall,
    AIUsage,
    ProxyChatRequest,
    ProxyChatResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.1


def _generation_params(request: ProxyChatRequest) -> Tuple[int, float]:
    max_tokens = request.max_tokens if request.max_tokens is not None else DEFAULT_MAX_TOKENS
    temperature = request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE
    return max_tokens, temperature


def _tool_arguments(raw: Optional[str]) -> Dict[str, Any]:
    try:
        arguments = json.loads(raw or "{}")
    except ValueError:
        logger.warning(f"Discarding malformed tool arguments: {raw!r}")
        return {}
    return arguments if isinstance(arguments, dict) else {}


def _estimate_tokens(text: str) -> int:
    # roughly four characters per token
    return math.ceil(len(text) / 4)


class BaseAIProvider(ABC):
    provider: AIProvider

    def __init__(self, config: ProviderConfig):
        self.config = config

    @abstractmethod
    async def chat(self, request: ProxyChatRequest) -> ProxyChatResponse:
        ...

    async def is_healthy(self) -> bool:
        try:
            await self.chat(
                ProxyChatRequest(messages=[{"role": "user", "content": "test"}], max_tokens=1)
            )
            return True
        except AIProviderError as e:
            logger.warning(f"{self.provider.value} health check error: {e}")
            return False


class OpenAIProvider(BaseAIProvider):
    provider = AIProvider.OPENAI

    def __init__(self, config: ProviderConfig, client: Optional[Any] = None):
        super().__init__(config)
        self.client = client or openai.AsyncOpenAI(
            api_key=config.api_key,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )

    async def chat(self, request: ProxyChatRequest) -> ProxyChatResponse:
        max_tokens, temperature = _generation_params(request)
        kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if request.tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in request.tools
            ]
            kwargs["tool_choice"] = "auto"

        try:
            completion = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise AIProviderError(f"OpenAI API error: {e}", provider="openai") from e

        if not completion.choices:
            raise AIProviderError("OpenAI API error: no completion choice returned", provider="openai")

        choice = completion.choices[0]
        tool_calls = [
            AIToolCall(name=call.function.name, parameters=_tool_arguments(call.function.arguments))
            for call in (choice.message.tool_calls or [])
        ]
        usage = None
        if completion.usage:
            usage = AIUsage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
                total_tokens=completion.usage.total_tokens,
            )

        return ProxyChatResponse(
            content=choice.message.content or "",
            provider=self.provider,
            model=self.config.model,
            usage=usage,
            tool_calls=tool_calls or None,
            finish_reason=choice.finish_reason,
        )


class ClaudeProvider(BaseAIProvider):
    provider = AIProvider.CLAUDE

    def __init__(self, config: ProviderConfig, client: Optional[Any] = None):
        super().__init__(config)
        self.client = client or anthropic.AsyncAnthropic(
            api_key=config.api_key,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )

    async def chat(self, request: ProxyChatRequest) -> ProxyChatResponse:
        max_tokens, temperature = _generation_params(request)
        system = "\n".join(m.content for m in request.messages if m.role == "system")
        kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": m.role, "content": m.content} for m in request.messages if m.role != "system"
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system
        if request.tools:
            kwargs["tools"] = [
                {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}
                for tool in request.tools
            ]

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.AnthropicError as e:
            raise AIProviderError(f"Claude API error: {e}", provider="claude") from e

        content = ""
        tool_calls: List[AIToolCall] = []
        for block in response.content:
            if block.type == "text":
                content += block.text
            elif block.type == "tool_use":
                tool_calls.append(AIToolCall(name=block.name, parameters=dict(block.input or {})))

        usage = None
        if response.usage:
            usage = AIUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        return ProxyChatResponse(
            content=content,
            provider=self.provider,
            model=self.config.model,
            usage=usage,
            tool_calls=tool_calls or None,
            finish_reason=response.stop_reason,
        )


class GeminiProvider(BaseAIProvider):
    """Gemini has no tool calling here; tools are described in the prompt instead"""

    provider = AIProvider.GEMINI

    def __init__(self, config: ProviderConfig, model_factory: Optional[Any] = None):
        super().__init__(config)
        if model_factory is None:
            genai.configure(api_key=config.api_key)
            model_factory = genai.GenerativeModel
        self.model_factory = model_factory

    @staticmethod
    def _history(messages) -> List[Dict[str, Any]]:
        return [
            {"role": "model" if m.role == "assistant" else "user", "parts": [m.content]}
            for m in messages
        ]

    async def chat(self, request: ProxyChatRequest) -> ProxyChatResponse:
        max_tokens, temperature = _generation_params(request)
        system = "\n".join(m.content for m in request.messages if m.role == "system")
        conversation = [m for m in request.messages if m.role != "system"]

        if not conversation or conversation[-1].role != "user":
            raise AIProviderError("Gemini API error: last message must be from user", provider="gemini")

        prompt = conversation[-1].content
        if request.tools:
            tool_lines = "\n".join(f"- {tool.name}: {tool.description}" for tool in request.tools)
            prompt = (
                f"{prompt}\n\nAVAILABLE TOOLS:\n{tool_lines}\n\n"
                "If you need to use any tools, describe which tool to call and with what parameters."
            )

        try:
            model = self.model_factory(
                self.config.model,
                generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
                system_instruction=system or None,
            )
            chat = model.start_chat(history=self._history(conversation[:-1]))
            response = await chat.send_message_async(prompt)
            text = response.text
        except Exception as e:
            # google-generativeai has no common base exception
            raise AIProviderError(f"Gemini API error: {e}", provider="gemini") from e

        prompt_tokens = _estimate_tokens(prompt + system)
        completion_tokens = _estimate_tokens(text)
        return ProxyChatResponse(
            content=text,
            provider=self.provider,
            model=self.config.model,
            usage=AIUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )


PROVIDER_CLASSES = {
    AIProvider.OPENAI: OpenAIProvider,
    AIProvider.CLAUDE: ClaudeProvider,
    AIProvider.GEMINI: GeminiProvider,
}
