"""Factory for creating model providers."""

import os
from typing import Dict, Optional, Tuple

from config import settings
from providers.base import LLMProvider
from providers.litellm_provider import DEFAULT_MODELS, LiteLLMProvider, _to_litellm_model


# Environment variables litellm reads per provider; any one set is enough
PROVIDER_ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "deepseek": ("DEEPSEEK_API_KEY",),
}


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> LLMProvider:
    """Get a streaming provider.

    Args:
        provider_name: Explicit provider name (anthropic, openai, gemini, deepseek)
        model: Model name; used as a LiteLLM model string when no provider is given

    Returns:
        LLMProvider instance

    Examples:
        get_provider("anthropic")             # anthropic/claude-sonnet-4-...
        get_provider("gemini", "gemini-2.5-pro")  # gemini/gemini-2.5-pro
        get_provider(model="gpt-4o")          # gpt-4o
        get_provider()                        # settings.default_model
    """
    if provider_name or model:
        resolved = _to_litellm_model(provider_name, model)
    else:
        resolved = settings.default_model
    return LiteLLMProvider(
        default_model=resolved,
        max_tokens=settings.max_tokens_per_turn,
        metadata={"component": "chat-participant"},
    )


def list_providers() -> Dict[str, bool]:
    """List all providers and whether an API key is configured for them."""
    return {
        name: any(os.environ.get(var, "").strip() for var in PROVIDER_ENV_KEYS[name])
        for name in DEFAULT_MODELS
    }
