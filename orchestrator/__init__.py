"""Orchestrator module for chat turn execution control."""

from .conversation_controller import ConversationController, run_turn

__all__ = [
    "ConversationController",
    "run_turn",
]
