"""Composer module for building model prompts."""

from .prompt_composer import PromptComposer

__all__ = ["PromptComposer"]
