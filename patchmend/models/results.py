from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import PatchFailedError


@dataclass(frozen=True)
class Location:
    """Where FuzzyLocator decided to apply a hunk (0-based position)."""

    position: int
    score: float
    max_score: int
    exact: bool = False
    confident: bool = True


class Strategy(enum.Enum):
    """Escalation tiers, in the only order they may run."""

    STANDARD = 1
    FUZZY = 2
    REGENERATE = 3

    def next(self) -> Optional["Strategy"]:
        members = list(Strategy)
        idx = members.index(self)
        return members[idx + 1] if idx + 1 < len(members) else None


@dataclass
class AttemptState:
    """Mutable ladder position for one apply-fix run."""

    attempt_index: int = 0
    strategy: Strategy = Strategy.STANDARD
    last_error: Optional[str] = None
    # Strategy name -> last error text recorded at that tier
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def max_attempts(self) -> int:
        return len(Strategy)

    def record_failure(self, message: str) -> None:
        self.last_error = message
        self.errors[self.strategy.name.lower()] = message

    def advance(self) -> bool:
        """Move to the next tier. Returns False once the ladder is exhausted."""
        nxt = self.strategy.next()
        self.attempt_index += 1
        if nxt is None:
            return False
        if nxt.value <= self.strategy.value:
            raise RuntimeError("escalation ladder cannot move backwards")
        self.strategy = nxt
        return True


@dataclass(frozen=True)
class NativeApplyOutcome:
    success: bool
    stderr: str = ""
    rejected_files: tuple = ()


@dataclass(frozen=True)
class RegenerationRequest:
    """Everything a patch generator receives when asked for a fresh patch."""

    file_contents: Dict[str, str]
    issue_description: str = ""
    prior_failure: Optional[str] = None

    def feedback(self) -> str:
        if not self.prior_failure:
            return ""
        return (
            "The previous patch could not be applied:\n"
            f"{self.prior_failure}\n"
            "Copy unchanged context lines exactly as they appear in the files."
        )


@dataclass
class ApplyResult:
    """Terminal outcome of an apply-fix run."""

    success: bool
    modified_files: List[str] = field(default_factory=list)
    error: Optional[PatchFailedError] = None
    strategy: Optional[Strategy] = None
    attempts: int = 0
    warnings: List[str] = field(default_factory=list)
    patch_text: Optional[str] = None  # the text that finally applied (or was last tried)

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "modifiedFiles": list(self.modified_files),
        }
        if self.error is not None:
            out["error"] = str(self.error)
        return out
