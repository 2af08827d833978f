"""Prompt composer.

Renders one structured prompt from a request, its intent and the project
context. Sections always appear in this order:

1. Role preamble (per intent, generic fallback)
2. Project specification (unresolved fields rendered as "unknown")
3. Constraints, verbatim and in stored order
4. Task, verbatim from the request
5. Output format directive

Composition is a pure function of its arguments: no clock, no randomness,
no settings lookups.
"""

from typing import List, Optional

from contracts import ChatRequest, ComposedPrompt, Intent, ProjectContext
from composer.templates import (
    CONSTRAINTS_HEADER,
    DEFAULT_PREAMBLE,
    OUTPUT_FORMAT,
    ROLE_PREAMBLES,
    UNKNOWN,
)


def _field(value: Optional[str]) -> str:
    return value if value else UNKNOWN


class PromptComposer:
    """Deterministic template fill for the model prompt."""

    def compose(
        self,
        request: ChatRequest,
        intent: Optional[str],
        context: ProjectContext,
    ) -> ComposedPrompt:
        """Build the prompt for this request.

        Args:
            request: The (intent-resolved) chat request
            intent: Intent tag selecting the role preamble; unknown tags use the default
            context: Project context for this turn

        Returns:
            ComposedPrompt wrapping the rendered text
        """
        parts = [
            self._preamble(intent),
            self._project_specification(context),
            self._constraints(context),
            "# TASK\n\n" + request.text,
            "# OUTPUT FORMAT\n\n" + OUTPUT_FORMAT,
        ]
        return ComposedPrompt(text="\n\n".join(parts) + "\n", intent=intent)

    @staticmethod
    def _preamble(intent: Optional[str]) -> str:
        try:
            key = Intent((intent or "").strip().lower())
        except ValueError:
            return DEFAULT_PREAMBLE
        return ROLE_PREAMBLES.get(key, DEFAULT_PREAMBLE)

    @staticmethod
    def _project_specification(context: ProjectContext) -> str:
        stack = context.tech_stack
        lines: List[str] = [
            "# PROJECT SPECIFICATION",
            "",
            f"- Language: {_field(stack.language)}",
            f"- Framework: {_field(stack.framework)}",
            f"- Version: {_field(stack.version)}",
        ]
        if context.existing_patterns:
            lines.append("- Existing patterns:")
            lines.extend(f"  - {pattern}" for pattern in context.existing_patterns)
        else:
            lines.append("- Existing patterns: none recorded")
        return "\n".join(lines)

    @staticmethod
    def _constraints(context: ProjectContext) -> str:
        if not context.constraints:
            return "# CONSTRAINTS\n\nnone declared"
        numbered = "\n".join(
            f"{i}. {constraint}" for i, constraint in enumerate(context.constraints, start=1)
        )
        return f"# CONSTRAINTS\n\n{CONSTRAINTS_HEADER}\n\n{numbered}"
