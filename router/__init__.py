"""Router module for intent resolution and missing-information analysis."""

from .analyzer import MissingInfoAnalyzer, SignalCheck, RULES
from .intent import resolve_intent, COMMAND_ALIASES

__all__ = [
    "MissingInfoAnalyzer",
    "SignalCheck",
    "RULES",
    "resolve_intent",
    "COMMAND_ALIASES",
]
