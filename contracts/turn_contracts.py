"""Turn contracts: clarifying questions, prompts, findings and turn results."""

from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum


class TurnState(str, Enum):
    """States of a single conversation turn."""
    PENDING = "pending"
    AWAITING_CLARIFICATION = "awaiting_clarification"  # terminal for the turn
    COMPOSING = "composing"
    DELIVERED = "delivered"  # terminal
    FAILED = "failed"  # terminal: context read or upstream error
    CANCELLED = "cancelled"  # terminal: caller cancelled before delivery


class MissingInfoItem(BaseModel):
    """A question that must be answered before a prompt can be composed."""
    question: str = Field(..., description="Question to surface to the user")
    rationale: str = Field(..., description="One-line reason the answer is needed")

    model_config = {"frozen": True}


class ComposedPrompt(BaseModel):
    """The exact text sent to the model. Opaque to everything downstream."""
    text: str
    intent: Optional[str] = None

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return self.text


class ValidationFinding(BaseModel):
    """A constraint the delivered response appears to violate."""
    constraint: str = Field(..., description="The constraint text, verbatim")
    violation: str = Field(..., description="Human-readable description of the violation")

    model_config = {"frozen": True}


class TurnResult(BaseModel):
    """Everything a turn produced, for the caller to render."""
    state: TurnState
    questions: List[MissingInfoItem] = Field(default_factory=list)
    prompt: Optional[ComposedPrompt] = None
    response: str = Field(default="", description="Concatenation of relayed fragments")
    findings: List[ValidationFinding] = Field(default_factory=list)
    unchecked_constraints: List[str] = Field(
        default_factory=list,
        description="Constraints no detector covers; absence of a finding proves nothing for these",
    )

    @property
    def needs_clarification(self) -> bool:
        return self.state == TurnState.AWAITING_CLARIFICATION
