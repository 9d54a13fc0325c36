"""
AI Manager - provider fallback, response caching and MCP tool execution
for the AI proxy service
"""

from typing import Dict, List, Optional
import asyncio
import json
import logging

from fantasy_ai.ai_proxy.config import ManagerConfig
from fantasy_ai.ai_proxy.providers import PROVIDER_CLASSES, BaseAIProvider
from fantasy_ai.core.errors import AIProviderError
from fantasy_ai.models.ai_models import (
    AIMessage,
    AIProvider,
    AITool,
    ProxyChatRequest,
    ProxyChatResponse,
)
from fantasy_ai.services.cache_service import CacheService, cache_service
from fantasy_ai.services.mcp_client import MCPClient, MCPToolCall

logger = logging.getLogger(__name__)

CACHE_PREFIX = "ai_response"


class AIManager:
    def __init__(
        self,
        config: ManagerConfig,
        providers: Optional[Dict[AIProvider, BaseAIProvider]] = None,
        mcp_client: Optional[MCPClient] = None,
        cache: Optional[CacheService] = None,
    ):
        self.config = config
        self.providers = providers if providers is not None else {
            provider: PROVIDER_CLASSES[provider](provider_config)
            for provider, provider_config in config.providers.items()
        }
        self.mcp = mcp_client or MCPClient()
        self.cache = cache or cache_service

    async def initialize(self) -> None:
        logger.info("Initializing AI Manager...")
        await self.mcp.initialize()
        status = await self.get_provider_status()
        for provider, healthy in status.items():
            logger.info(f"{provider} provider health check: {'PASS' if healthy else 'FAIL'}")
        healthy_count = sum(1 for healthy in status.values() if healthy)
        if healthy_count == 0:
            logger.warning("⚠️  No healthy AI providers available at startup")
        else:
            logger.info(f"AI Manager initialized with {healthy_count} healthy providers")

    def _providers_in_order(self, preferred: Optional[AIProvider]) -> List[AIProvider]:
        ordered: List[AIProvider] = []
        for provider in [preferred, self.config.default_provider, *self.config.fallback_providers]:
            if provider is not None and provider in self.providers and provider not in ordered:
                ordered.append(provider)
        return ordered

    def _cache_key(
        self, request: ProxyChatRequest, preferred: Optional[AIProvider], enable_mcp: bool = False
    ) -> str:
        return CacheService.generate_key(
            CACHE_PREFIX,
            {
                "messages": [m.model_dump() for m in request.messages],
                "maxTokens": request.max_tokens,
                "temperature": request.temperature,
                "provider": (preferred or self.config.default_provider).value,
                "tools": [tool.model_dump() for tool in request.tools or []],
                "enableMCP": enable_mcp,
            },
        )

    def _mcp_tools(self) -> List[AITool]:
        return [
            AITool(name=tool.name, description=tool.description, parameters=tool.input_schema)
            for tool in self.mcp.available_tools
        ]

    async def chat(
        self,
        request: ProxyChatRequest,
        preferred_provider: Optional[AIProvider] = None,
        enable_mcp: bool = False,
    ) -> ProxyChatResponse:
        """Try providers in order until one answers; the last provider error propagates"""
        cache_key = self._cache_key(request, preferred_provider, enable_mcp)
        if self.config.cache_enabled:
            cached = await self.cache.get(cache_key)
            if cached:
                logger.info("Returning cached AI response")
                return ProxyChatResponse.model_validate(cached)

        if enable_mcp:
            request = request.model_copy(update={"tools": [*(request.tools or []), *self._mcp_tools()]})

        last_error: Optional[Exception] = None
        for provider_type in self._providers_in_order(preferred_provider):
            provider = self.providers[provider_type]
            try:
                logger.info(f"Attempting AI request with {provider_type.value} provider")
                response = await provider.chat(request)

                if response.tool_calls and enable_mcp:
                    response = await self._handle_tool_calls(response, request, provider)

                if self.config.cache_enabled:
                    await self.cache.set(cache_key, response.to_json(), self.config.cache_ttl)

                logger.info(f"AI request successful with {provider_type.value} provider")
                return response
            except AIProviderError as e:
                logger.error(f"{provider_type.value} provider failed: {e}")
                last_error = e

        raise last_error or AIProviderError("All AI providers failed")

    async def _handle_tool_calls(
        self,
        response: ProxyChatResponse,
        original: ProxyChatRequest,
        provider: BaseAIProvider,
    ) -> ProxyChatResponse:
        logger.info(f"Executing {len(response.tool_calls)} tool calls")
        results = await self.mcp.call_multiple_tools(
            [MCPToolCall(name=call.name, arguments=call.parameters) for call in response.tool_calls]
        )

        lines = []
        for call, result in zip(response.tool_calls, results):
            if result.is_error:
                lines.append(f"{call.name}: Error - {result.error_message}")
            else:
                lines.append(f"{call.name}: {json.dumps(result.content, indent=2, default=str)}")

        messages = list(original.messages)
        if response.content:
            messages.append(AIMessage(role="assistant", content=response.content))
        messages.append(
            AIMessage(
                role="user",
                content="Tool execution results:\n"
                + "\n\n".join(lines)
                + "\n\nPlease analyze these results and provide insights.",
            )
        )

        follow_up = ProxyChatRequest(
            messages=messages,
            max_tokens=original.max_tokens,
            temperature=original.temperature,
        )
        final = await provider.chat(follow_up)
        return final.model_copy(update={"tool_calls": response.tool_calls})

    async def get_provider_status(self) -> Dict[str, bool]:
        providers = list(self.providers.items())
        results = await asyncio.gather(*(provider.is_healthy() for _, provider in providers))
        return {provider_type.value: healthy for (provider_type, _), healthy in zip(providers, results)}

    async def get_mcp_status(self) -> bool:
        return await self.mcp.health_check()

    def get_available_providers(self) -> List[str]:
        return [provider.value for provider in self.providers]

    def get_available_tools(self) -> List[str]:
        return [tool.name for tool in self.mcp.available_tools]

    async def close(self) -> None:
        await self.cache.close()
