"""
Direct HTTPS calls to the AI vendors plus the JSON-RPC call to the internal
AI proxy service.

Each call either returns an AIResponse or raises AIProviderError; choosing
what to try next is AIService's job.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from fantasy_ai.core.config import settings
from fantasy_ai.core.errors import AIProviderError
from fantasy_ai.models.ai_models import AIProvider, AIRequest, AIResponse, AIUsage

logger = logging.getLogger(__name__)

CLAUDE_URL = "https://api.anthropic.com/v1/messages"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_MAX_TOKENS = 2000
DEFAULT_TEMPERATURE = 0.1

PROVIDER_KEYS = {
    AIProvider.CLAUDE: "ANTHROPIC_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.GEMINI: "GEMINI_API_KEY",
}
PROVIDER_PRIORITY = [AIProvider.CLAUDE, AIProvider.OPENAI, AIProvider.GEMINI]

_rpc_ids = itertools.count(1)

# pydantic's ValidationError is a ValueError
RESPONSE_FORMAT_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError)


def configured_providers() -> List[AIProvider]:
    return [provider for provider in PROVIDER_PRIORITY if settings.has_key(PROVIDER_KEYS[provider])]


def default_provider() -> AIProvider:
    configured = configured_providers()
    if settings.DEFAULT_AI_PROVIDER:
        try:
            preferred = AIProvider(settings.DEFAULT_AI_PROVIDER.lower())
            if preferred in configured:
                return preferred
        except ValueError:
            logger.warning(f"Unknown DEFAULT_AI_PROVIDER '{settings.DEFAULT_AI_PROVIDER}', ignoring")
    if configured:
        return configured[0]
    return AIProvider.CLAUDE


def _generation_params(request: AIRequest) -> Tuple[int, float]:
    max_tokens = request.max_tokens if request.max_tokens is not None else DEFAULT_MAX_TOKENS
    temperature = request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE
    return max_tokens, temperature


def _token_count(usage: Dict[str, Any], key: str) -> int:
    """Vendors send null or omit counts on some replies"""
    return int(usage.get(key) or 0)


def _split_system(request: AIRequest) -> Tuple[str, List[Dict[str, str]]]:
    system = "\n\n".join(m.content for m in request.messages if m.role == "system")
    conversation = [
        {"role": m.role, "content": m.content} for m in request.messages if m.role != "system"
    ]
    return system, conversation


class AIClient:
    """One outbound call per method; no provider fallback happens here"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        proxy_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout or settings.AI_REQUEST_TIMEOUT
        self.proxy_url = (proxy_url or settings.AI_SERVICE_URL).rstrip("/")
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self.timeout, transport=self._transport)

    async def _post(self, vendor: str, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise AIProviderError(f"{vendor} API request failed: {e}", provider=vendor.lower()) from e

        if response.status_code >= 400:
            logger.warning(f"{vendor} API returned {response.status_code}: {response.text[:200]}")
            raise AIProviderError(f"{vendor} API error: {response.status_code}", provider=vendor.lower())

        try:
            return response.json()
        except ValueError as e:
            raise AIProviderError(f"{vendor} API returned invalid JSON", provider=vendor.lower()) from e

    @staticmethod
    def _require_key(provider: AIProvider) -> str:
        key_name = PROVIDER_KEYS[provider]
        if not settings.has_key(key_name):
            raise AIProviderError(f"{key_name} not configured", provider=provider.value)
        return getattr(settings, key_name)

    async def call_provider(self, request: AIRequest, provider: AIProvider) -> AIResponse:
        logger.info(f"Calling {provider.value} AI provider directly")
        if provider == AIProvider.CLAUDE:
            return await self.call_claude(request)
        if provider == AIProvider.OPENAI:
            return await self.call_openai(request)
        if provider == AIProvider.GEMINI:
            return await self.call_gemini(request)
        raise AIProviderError(f"Unsupported AI provider: {provider}")

    async def call_claude(self, request: AIRequest) -> AIResponse:
        api_key = self._require_key(AIProvider.CLAUDE)
        max_tokens, temperature = _generation_params(request)
        system, messages = _split_system(request)

        payload: Dict[str, Any] = {
            "model": settings.ANTHROPIC_MODEL,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system:
            payload["system"] = system

        data = await self._post(
            "Claude",
            CLAUDE_URL,
            {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION},
            payload,
        )

        try:
            content = "".join(
                block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
            )
            usage = data.get("usage") or {}
            input_tokens = _token_count(usage, "input_tokens")
            output_tokens = _token_count(usage, "output_tokens")
            return AIResponse(
                content=content,
                provider=AIProvider.CLAUDE,
                model=data.get("model") or settings.ANTHROPIC_MODEL,
                usage=AIUsage(
                    prompt_tokens=input_tokens,
                    completion_tokens=output_tokens,
                    total_tokens=input_tokens + output_tokens,
                ),
            )
        except RESPONSE_FORMAT_ERRORS as e:
            raise AIProviderError(f"Unexpected Claude response format: {e}", provider="claude") from e

    async def call_openai(self, request: AIRequest) -> AIResponse:
        api_key = self._require_key(AIProvider.OPENAI)
        max_tokens, temperature = _generation_params(request)

        data = await self._post(
            "OpenAI",
            OPENAI_URL,
            {"Authorization": f"Bearer {api_key}"},
            {
                "model": settings.OPENAI_MODEL,
                "messages": [{"role": m.role, "content": m.content} for m in request.messages],
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )

        try:
            content = data["choices"][0]["message"]["content"] or ""
            usage = data.get("usage") or {}
            return AIResponse(
                content=content,
                provider=AIProvider.OPENAI,
                model=data.get("model") or settings.OPENAI_MODEL,
                usage=AIUsage(
                    prompt_tokens=_token_count(usage, "prompt_tokens"),
                    completion_tokens=_token_count(usage, "completion_tokens"),
                    total_tokens=_token_count(usage, "total_tokens"),
                ),
            )
        except RESPONSE_FORMAT_ERRORS as e:
            raise AIProviderError(f"Unexpected OpenAI response format: {e}", provider="openai") from e

    async def call_gemini(self, request: AIRequest) -> AIResponse:
        api_key = self._require_key(AIProvider.GEMINI)
        max_tokens, temperature = _generation_params(request)
        system, messages = _split_system(request)

        payload: Dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m["role"] == "assistant" else "user",
                    "parts": [{"text": m["content"]}],
                }
                for m in messages
            ],
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        data = await self._post(
            "Gemini",
            GEMINI_URL.format(model=settings.GEMINI_MODEL),
            {"x-goog-api-key": api_key},
            payload,
        )

        try:
            parts = data["candidates"][0]["content"]["parts"]
            content = "".join(part.get("text", "") for part in parts)
            usage = data.get("usageMetadata") or {}
            return AIResponse(
                content=content,
                provider=AIProvider.GEMINI,
                model=settings.GEMINI_MODEL,
                usage=AIUsage(
                    prompt_tokens=_token_count(usage, "promptTokenCount"),
                    completion_tokens=_token_count(usage, "candidatesTokenCount"),
                    total_tokens=_token_count(usage, "totalTokenCount"),
                ),
            )
        except RESPONSE_FORMAT_ERRORS as e:
            raise AIProviderError(f"Unexpected Gemini response format: {e}", provider="gemini") from e

    # ------------------------------------------------------------------
    # Internal AI proxy
    # ------------------------------------------------------------------

    async def call_proxy(self, request: AIRequest) -> AIResponse:
        """JSON-RPC ai.chat against the AI proxy service"""
        params = request.model_dump(by_alias=True, mode="json", exclude_none=True)
        payload = {"jsonrpc": "2.0", "id": next(_rpc_ids), "method": "ai.chat", "params": params}
        logger.info(f"Falling back to AI proxy at {self.proxy_url}")

        try:
            async with self._client() as client:
                response = await client.post(f"{self.proxy_url}/rpc", json=payload)
        except httpx.HTTPError as e:
            raise AIProviderError(f"AI proxy request failed: {e}", provider="proxy") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise AIProviderError(f"AI proxy error: {response.status_code}", provider="proxy")

        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise AIProviderError(f"AI proxy error: {message}", provider="proxy")

        if response.status_code >= 400:
            raise AIProviderError(f"AI proxy error: {response.status_code}", provider="proxy")

        # REST-style envelopes are accepted as well as JSON-RPC results
        result = body.get("result", body.get("data"))
        if not isinstance(result, dict):
            raise AIProviderError("AI proxy returned no result", provider="proxy")

        try:
            return AIResponse.model_validate(result)
        except ValueError as e:
            raise AIProviderError(f"AI proxy returned an invalid response: {e}", provider="proxy") from e

    async def proxy_health(self) -> bool:
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get(f"{self.proxy_url}/health")
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"AI proxy health check failed: {e}")
            return False
