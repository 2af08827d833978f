"""Workspace module for reading project context from declarative files."""

from .cache import ContextCache
from .reader import ProjectContextReader, parse_constraints

__all__ = ["ContextCache", "ProjectContextReader", "parse_constraints"]
