"""Model provider abstraction for streaming replies."""

from .base import LLMProvider
from .factory import get_provider, list_providers

__all__ = [
    "LLMProvider",
    "get_provider",
    "list_providers",
]
