"""Project context contracts.

A ProjectContext is built fresh for every request from the project's
declarative files and never mutated afterwards.
"""

from pydantic import BaseModel, Field
from typing import Optional, Tuple


class TechStack(BaseModel):
    """Detected language/framework. None means unresolved."""
    language: Optional[str] = Field(None, description="e.g., TypeScript, Python")
    framework: Optional[str] = Field(None, description="e.g., react, django")
    version: Optional[str] = Field(None, description="Framework version as declared")

    model_config = {"frozen": True}

    def is_unknown(self) -> bool:
        """True when no field could be resolved."""
        return self.language is None and self.framework is None and self.version is None


class ProjectContext(BaseModel):
    """Normalized view of a project root for one request."""
    tech_stack: TechStack = Field(default_factory=TechStack)
    constraints: Tuple[str, ...] = Field(
        default=(),
        description="Imperative rules in discovery order; later entries win on conflict",
    )
    existing_patterns: Tuple[str, ...] = Field(
        default=(),
        description="Best-effort pattern descriptions; may be empty",
    )

    model_config = {"frozen": True}

    def searchable_text(self) -> str:
        """All free text the context carries, for signal lookups."""
        parts = [
            self.tech_stack.language or "",
            self.tech_stack.framework or "",
            *self.constraints,
            *self.existing_patterns,
        ]
        return "\n".join(p for p in parts if p)
