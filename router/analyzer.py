"""Missing-information analyzer.

Decides whether a request carries enough context to compose a prompt.
Each intent maps to an ordered tuple of signal checks; a check fails when
its signal is absent from both the request text and the project context,
and every failing check yields exactly one MissingInfoItem.

Requests without a recognized intent only run the tag-agnostic checks
(currently none), so unknown intents are never blocked.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from contracts import ChatRequest, Intent, MissingInfoItem, ProjectContext
from errors import UnknownIntent

logger = logging.getLogger(__name__)


def mentions(text: str, keywords: Tuple[str, ...], ignore_case: bool = True) -> bool:
    """Whole-word search for any keyword."""
    flags = re.IGNORECASE if ignore_case else 0
    for keyword in keywords:
        pattern = r"(?<![A-Za-z0-9])" + re.escape(keyword) + r"(?![A-Za-z0-9])"
        if re.search(pattern, text, flags):
            return True
    return False


@dataclass(frozen=True)
class SignalCheck:
    """One required signal for an intent."""
    name: str
    question: str
    rationale: str
    keywords: Tuple[str, ...]
    # Matched with exact case; acronyms and names that are also English words
    exact_keywords: Tuple[str, ...] = ()
    # Resolved tech-stack frameworks that also satisfy the check
    frameworks: Tuple[str, ...] = ()

    def is_satisfied(self, request: ChatRequest, context: ProjectContext) -> bool:
        for text in (request.text, context.searchable_text()):
            if mentions(text, self.keywords) or mentions(text, self.exact_keywords, ignore_case=False):
                return True
        framework = (context.tech_stack.framework or "").lower()
        return bool(framework) and framework in self.frameworks

    def to_item(self) -> MissingInfoItem:
        return MissingInfoItem(question=self.question, rationale=self.rationale)


CLOUD_PROVIDER = SignalCheck(
    name="cloud_provider",
    question="Which cloud provider should this target (AWS, Azure, GCP, ...)?",
    rationale="Infrastructure code is provider-specific and cannot be written generically.",
    keywords=(
        "aws", "amazon web services", "azure", "gcp", "google cloud",
        "digitalocean", "oracle cloud", "ibm cloud", "alibaba cloud",
    ),
)

API_STYLE = SignalCheck(
    name="api_style",
    question="Which API style should this use (REST, GraphQL, gRPC, ...)?",
    rationale="Routing, schemas and error handling differ per API style.",
    keywords=(
        "restful", "rest api", "graphql", "grpc", "json-rpc", "openapi",
        "websocket", "websockets", "trpc",
    ),
    exact_keywords=("REST", "SOAP"),
)

UI_FRAMEWORK = SignalCheck(
    name="ui_framework",
    question="Which UI framework is the component for (React, Vue, Svelte, Angular, ...)?",
    rationale="Component structure and state handling are framework-specific.",
    keywords=(
        "vue", "vue.js", "svelte", "sveltekit", "angular", "solid-js", "solidjs",
        "preact", "lit-element", "lit-html", "reactjs", "react.js", "next.js", "nuxt",
    ),
    exact_keywords=("React", "SolidJS", "Lit"),
    frameworks=(
        "react", "vue", "svelte", "@angular/core", "solid-js",
        "next", "nuxt", "@remix-run/react", "@sveltejs/kit",
    ),
)


RULES: Dict[Intent, Tuple[SignalCheck, ...]] = {
    Intent.INFRASTRUCTURE: (CLOUD_PROVIDER,),
    Intent.API: (API_STYLE,),
    Intent.COMPONENT: (UI_FRAMEWORK,),
}

TAG_AGNOSTIC_CHECKS: Tuple[SignalCheck, ...] = ()


class MissingInfoAnalyzer:
    """Table-driven check runner. Pure: no I/O, deterministic ordering."""

    def __init__(self, rules: Optional[Dict[Intent, Tuple[SignalCheck, ...]]] = None):
        self.rules = RULES if rules is None else rules

    def checks_for(self, intent: Optional[str]) -> Tuple[SignalCheck, ...]:
        """Return the intent's checks in declared order.

        Raises:
            UnknownIntent: If the tag is not in the rule table.
        """
        if not intent:
            return ()
        try:
            key = Intent(intent.strip().lower())
        except ValueError:
            raise UnknownIntent(intent) from None
        if key not in self.rules:
            raise UnknownIntent(intent)
        return self.rules[key]

    def analyze(self, request: ChatRequest, context: ProjectContext) -> List[MissingInfoItem]:
        """Return the unresolved questions for this request, in check order."""
        checks = list(TAG_AGNOSTIC_CHECKS)
        try:
            checks.extend(self.checks_for(request.intent))
        except UnknownIntent as e:
            logger.info("%s; no intent-specific checks apply", e)

        failing = [check for check in checks if not check.is_satisfied(request, context)]
        if failing:
            logger.debug("intent %s missing %s", request.intent, [c.name for c in failing])
        return [check.to_item() for check in failing]
