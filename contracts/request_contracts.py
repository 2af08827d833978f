"""Request contracts: what the chat surface hands to a turn."""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class Intent(str, Enum):
    """Closed set of task kinds a request can be tagged with."""
    INFRASTRUCTURE = "infrastructure"
    API = "api"
    COMPONENT = "component"


class ChatRequest(BaseModel):
    """A user's request, immutable once received.

    `intent` is kept as a plain string so that tags outside the closed set
    survive to the analyzer, which treats them as carrying no checks.
    """
    text: str = Field(..., description="Free-form request text")
    intent: Optional[str] = Field(None, description="Intent tag, e.g. 'infrastructure'")
    history_ref: Optional[str] = Field(None, description="Opaque conversation-history reference")

    model_config = {"frozen": True}
