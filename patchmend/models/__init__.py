from .hunks import FilePatch, Hunk, HunkLine, LineKind, ParseResult, Patch, tally_counts
from .results import (
    ApplyResult,
    AttemptState,
    Location,
    NativeApplyOutcome,
    RegenerationRequest,
    Strategy,
)

__all__ = [
    "LineKind",
    "HunkLine",
    "Hunk",
    "FilePatch",
    "Patch",
    "ParseResult",
    "tally_counts",
    "Location",
    "Strategy",
    "AttemptState",
    "NativeApplyOutcome",
    "RegenerationRequest",
    "ApplyResult",
]
