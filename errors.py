"""Error taxonomy for a chat participant turn.

Fatal for the turn (surfaced to the caller):
- ContextReadError: the project root itself cannot be read
- UpstreamTimeout / UpstreamFailure: the model client stalled or errored

Absorbed where they are raised (logged, never reach the caller):
- MalformedConstraintEntry: a constraints-file line is skipped
- UnknownIntent: no intent-specific checks apply
"""

from pathlib import Path
from typing import Union


class ParticipantError(RuntimeError):
    """Base class for errors that end a turn."""


class ContextReadError(ParticipantError):
    def __init__(self, root: Union[str, Path], reason: str):
        super().__init__(f"cannot read project root {root}: {reason}")
        self.root = Path(root)
        self.reason = reason


class UpstreamFailure(ParticipantError):
    """The model client raised mid-stream; `partial` holds what was relayed."""

    def __init__(self, msg: str, partial: str = ""):
        super().__init__(msg)
        self.partial = partial


class UpstreamTimeout(UpstreamFailure):
    def __init__(self, timeout: float, partial: str = ""):
        super().__init__(f"model stream stalled for more than {timeout:g}s", partial=partial)
        self.timeout = timeout


class MalformedConstraintEntry(ValueError):
    def __init__(self, line_no: int, line: str):
        super().__init__(f"malformed constraint entry on line {line_no}: {line!r}")
        self.line_no = line_no
        self.line = line


class UnknownIntent(ValueError):
    def __init__(self, intent: str):
        super().__init__(f"unknown intent: {intent}")
        self.intent = intent
