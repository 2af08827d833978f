"""Post-hoc response validator.

Checks a fully delivered response against the project's constraints and
reports likely violations. Findings annotate the response after the fact;
they never edit or block what was already streamed.

Known limitation: validation is open-world. Only constraints that a detector
recognizes are checked ("never use X", "no hardcoded secrets", "always use X").
A constraint with no detector is never flagged, so the absence of a finding
is not proof of compliance. `unchecked()` lists those constraints so callers
can say so instead of implying they were verified.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from contracts import ValidationFinding

logger = logging.getLogger(__name__)


# Longest subject (in words) a prohibition/requirement detector will accept
MAX_SUBJECT_WORDS = 4

_SECRETS_RULE = re.compile(
    r"\b(?:hard-?cod\w*|embed\w*|commit\w*|inline\w*|plain-?text)\b.*\b(?:secrets?|credentials?|passwords?|api keys?|tokens?|keys?)\b",
    re.IGNORECASE,
)
_PROHIBITION_RULE = re.compile(
    r"^(?:never|do not|don't|avoid|no)\s+(?:use\s+|using\s+|import\s+|add\s+|call\s+)?(?P<subject>.+?)[.!]*$",
    re.IGNORECASE,
)
_REQUIREMENT_RULE = re.compile(
    r"^(?:always\s+)?use\s+(?P<subject>.+?)(?:\s+(?:for|in|when|on)\b.*)?[.!]*$",
    re.IGNORECASE,
)

_SECRET_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\bAKIA[0-9A-Z]{16}\b"),
    re.compile(r"-----BEGIN (?:RSA |EC |OPENSSH )?PRIVATE KEY-----"),
    re.compile(
        r"""\b(?:password|passwd|secret|api[_-]?key|access[_-]?key|auth[_-]?token|token)\b\s*[:=]\s*["'][^"'\s]{6,}["']""",
        re.IGNORECASE,
    ),
)


# A quoted span names the subject exactly: Never use `any` type -> any
_QUOTED_SUBJECT = re.compile(r"`([^`]+)`|\"([^\"]+)\"|(?<!\w)'([^']+)'(?!\w)")


def _clean_subject(subject: str) -> Optional[str]:
    quoted = _QUOTED_SUBJECT.search(subject)
    if quoted:
        subject = next(group for group in quoted.groups() if group)
    subject = re.sub(r"[`\"]", "", subject).strip().strip("'").strip()
    if not subject or len(subject.split()) > MAX_SUBJECT_WORDS:
        return None
    return subject


def _contains_term(text: str, term: str) -> bool:
    pattern = r"(?<![A-Za-z0-9_])" + re.escape(term) + r"(?![A-Za-z0-9_])"
    return re.search(pattern, text, re.IGNORECASE) is not None


def _claim_secrets(constraint: str) -> Optional[str]:
    return "secrets" if _SECRETS_RULE.search(constraint) else None


def _check_secrets(_subject: str, response: str) -> Optional[str]:
    for pattern in _SECRET_PATTERNS:
        match = pattern.search(response)
        if match:
            excerpt = match.group(0)
            if len(excerpt) > 40:
                excerpt = excerpt[:37] + "..."
            return f"response contains what looks like a hardcoded credential: {excerpt}"
    return None


def _claim_prohibition(constraint: str) -> Optional[str]:
    match = _PROHIBITION_RULE.match(constraint.strip())
    return _clean_subject(match.group("subject")) if match else None


def _check_prohibition(subject: str, response: str) -> Optional[str]:
    if _contains_term(response, subject):
        return f"response uses '{subject}', which this constraint prohibits"
    return None


def _claim_requirement(constraint: str) -> Optional[str]:
    match = _REQUIREMENT_RULE.match(constraint.strip())
    return _clean_subject(match.group("subject")) if match else None


def _check_requirement(subject: str, response: str) -> Optional[str]:
    if not _contains_term(response, subject):
        return f"response never mentions '{subject}', which this constraint requires"
    return None


@dataclass(frozen=True)
class Detector:
    """Recognizes one constraint shape and checks a response against it."""
    name: str
    claim: Callable[[str], Optional[str]]  # constraint -> subject, None if not recognized
    check: Callable[[str, str], Optional[str]]  # (subject, response) -> violation or None


# First detector that claims a constraint owns it
DETECTORS: Tuple[Detector, ...] = (
    Detector("secrets", _claim_secrets, _check_secrets),
    Detector("prohibition", _claim_prohibition, _check_prohibition),
    Detector("requirement", _claim_requirement, _check_requirement),
)


class ResponseValidator:
    """Evaluates each constraint independently of the others."""

    def __init__(self, detectors: Optional[Tuple[Detector, ...]] = None):
        self.detectors = DETECTORS if detectors is None else detectors

    def detector_for(self, constraint: str) -> Optional[Tuple[Detector, str]]:
        for detector in self.detectors:
            subject = detector.claim(constraint)
            if subject:
                return detector, subject
        return None

    def validate(self, full_response: str, constraints: Iterable[str]) -> List[ValidationFinding]:
        """Return findings in constraint declaration order.

        Args:
            full_response: Concatenation of every delivered fragment
            constraints: Constraint texts as stored in the ProjectContext
        """
        findings: List[ValidationFinding] = []
        for constraint in constraints:
            claimed = self.detector_for(constraint)
            if claimed is None:
                logger.debug("no detector for constraint %r; not checked", constraint)
                continue
            detector, subject = claimed
            violation = detector.check(subject, full_response)
            if violation:
                findings.append(ValidationFinding(constraint=constraint, violation=violation))
        return findings

    def unchecked(self, constraints: Iterable[str]) -> List[str]:
        """Constraints no detector recognizes (never flagged, never verified)."""
        return [c for c in constraints if self.detector_for(c) is None]
