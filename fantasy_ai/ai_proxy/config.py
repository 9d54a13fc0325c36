"""
Provider configuration for the AI proxy, derived from the shared settings
"""

from dataclasses import dataclass, field
from typing import Dict, List
import logging

from fantasy_ai.core.config import settings
from fantasy_ai.models.ai_models import AIProvider
from fantasy_ai.services.ai_client import PROVIDER_KEYS, PROVIDER_PRIORITY

logger = logging.getLogger(__name__)

PROVIDER_MODELS = {
    AIProvider.CLAUDE: "ANTHROPIC_MODEL",
    AIProvider.OPENAI: "OPENAI_MODEL",
    AIProvider.GEMINI: "GEMINI_MODEL",
}


@dataclass
class ProviderConfig:
    api_key: str
    model: str
    max_retries: int = 3
    timeout: float = 30.0


@dataclass
class ManagerConfig:
    providers: Dict[AIProvider, ProviderConfig]
    default_provider: AIProvider
    fallback_providers: List[AIProvider] = field(default_factory=list)
    cache_enabled: bool = True
    cache_ttl: int = 3600


def _default_provider(available: List[AIProvider]) -> AIProvider:
    if settings.DEFAULT_AI_PROVIDER:
        try:
            preferred = AIProvider(settings.DEFAULT_AI_PROVIDER.lower())
            if preferred in available:
                return preferred
        except ValueError:
            logger.warning(f"Unknown DEFAULT_AI_PROVIDER '{settings.DEFAULT_AI_PROVIDER}', ignoring")
    return available[0]


def build_manager_config() -> ManagerConfig:
    """Config for every provider with a usable key; raises RuntimeError when there is none"""
    providers = {
        provider: ProviderConfig(
            api_key=getattr(settings, PROVIDER_KEYS[provider]),
            model=getattr(settings, PROVIDER_MODELS[provider]),
            max_retries=settings.AI_MAX_RETRIES,
            timeout=settings.AI_REQUEST_TIMEOUT,
        )
        for provider in PROVIDER_PRIORITY
        if settings.has_key(PROVIDER_KEYS[provider])
    }

    if not providers:
        raise RuntimeError("At least one AI provider must be configured (OpenAI, Claude, or Gemini)")

    available = list(providers)
    default = _default_provider(available)
    fallbacks = [provider for provider in available if provider != default]
    logger.info(
        f"AI Config: Default provider: {default.value}, "
        f"Fallbacks: {', '.join(p.value for p in fallbacks) or 'none'}"
    )

    return ManagerConfig(
        providers=providers,
        default_provider=default,
        fallback_providers=fallbacks,
        cache_enabled=settings.CACHE_ENABLED,
        cache_ttl=settings.CACHE_TTL_SECONDS,
    )
