"""Base model client interface.

A client takes one composed prompt plus a cancellation token and returns a
lazy, finite sequence of text fragments. A stream cannot be resumed; a new
call starts a new stream.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from contracts import ComposedPrompt


class LLMProvider(ABC):
    """Abstract base class for streaming model clients."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (litellm, or a test double)."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a call does not override it."""
        pass

    @abstractmethod
    def stream(
        self,
        prompt: ComposedPrompt,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """Stream the model's reply to `prompt`.

        Args:
            prompt: The composed prompt, sent as-is
            cancel_token: Set by the caller to stop the stream early

        Returns:
            Async iterator of text fragments in generation order
        """
        pass

    def is_available(self) -> bool:
        """Check if this provider can be called (API key set, etc.)."""
        return True
