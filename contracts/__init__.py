"""Pydantic contracts for the chat participant.

All handoffs between pipeline stages are typed through these contracts.
"""

from .request_contracts import (
    Intent,
    ChatRequest,
)

from .context_contracts import (
    TechStack,
    ProjectContext,
)

from .turn_contracts import (
    TurnState,
    MissingInfoItem,
    ComposedPrompt,
    ValidationFinding,
    TurnResult,
)

__all__ = [
    # Request
    "Intent",
    "ChatRequest",
    # Context
    "TechStack",
    "ProjectContext",
    # Turn
    "TurnState",
    "MissingInfoItem",
    "ComposedPrompt",
    "ValidationFinding",
    "TurnResult",
]
