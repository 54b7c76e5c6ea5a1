from .commit import CommitError
from .patch import (
    AnchorError,
    ApplyError,
    EscalationCancelled,
    ExhaustionError,
    FormatError,
    LocationError,
    PatchFailedError,
)
from .path import PathViolation

__all__ = [
    "PatchFailedError",
    "FormatError",
    "AnchorError",
    "LocationError",
    "ApplyError",
    "ExhaustionError",
    "EscalationCancelled",
    "CommitError",
    "PathViolation",
]
