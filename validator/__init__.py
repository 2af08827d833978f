"""Validator module for post-hoc response checks."""

from .response_validator import ResponseValidator, Detector, DETECTORS

__all__ = ["ResponseValidator", "Detector", "DETECTORS"]
