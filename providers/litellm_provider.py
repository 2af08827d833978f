"""LiteLLM-backed streaming provider. Single implementation for all model calls."""

import asyncio
from typing import AsyncIterator, Optional

from contracts import ComposedPrompt
from providers.base import LLMProvider


# LiteLLM model strings: provider/model-name (OpenAI can omit prefix)
DEFAULT_MODELS = {
    "anthropic": "anthropic/claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "gemini": "gemini/gemini-2.5-flash",
    "deepseek": "deepseek/deepseek-chat",
}

# Short names accepted on the command line
PROVIDER_ALIASES = {
    "claude": "anthropic",
    "gpt": "openai",
    "google": "gemini",
}


def _to_litellm_model(provider_name: Optional[str], model: Optional[str]) -> str:
    """Map provider + model to a LiteLLM model string."""
    if provider_name:
        key = PROVIDER_ALIASES.get(provider_name.lower(), provider_name.lower())
        if key not in DEFAULT_MODELS:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {list(DEFAULT_MODELS.keys())}"
            )
        if not model:
            return DEFAULT_MODELS[key]
        if key == "openai" or model.startswith(f"{key}/"):
            return model  # OpenAI works without prefix
        return f"{key}/{model}"
    if model:
        return model
    return DEFAULT_MODELS["openai"]


class LiteLLMProvider(LLMProvider):
    """Streams completions through litellm.acompletion(stream=True)."""

    def __init__(
        self,
        default_model: str,
        max_tokens: int = 4096,
        metadata: Optional[dict] = None,
    ):
        """Initialize with the LiteLLM model string to use.

        Args:
            default_model: LiteLLM model string (e.g. gpt-4o-mini, anthropic/claude-sonnet-4-20250514).
            max_tokens: Maximum tokens in one streamed reply.
            metadata: Optional dict passed through to litellm callbacks.
        """
        self._default_model = default_model
        self.max_tokens = max_tokens
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def set_metadata(self, metadata: dict) -> None:
        self._metadata.update(metadata)

    async def stream(
        self,
        prompt: ComposedPrompt,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        import litellm

        response = await litellm.acompletion(
            model=self._default_model,
            messages=[{"role": "user", "content": prompt.text}],
            max_tokens=self.max_tokens,
            stream=True,
            metadata={**self._metadata},
        )
        async for chunk in response:
            if cancel_token is not None and cancel_token.is_set():
                break
            choices = getattr(chunk, "choices", None) or []
            if not choices:
                continue
            delta = getattr(choices[0], "delta", None)
            content = getattr(delta, "content", None)
            if content:
                yield content

    def is_available(self) -> bool:
        """LiteLLM reads API keys from env; we consider it available if the model is set."""
        return bool(self._default_model)
