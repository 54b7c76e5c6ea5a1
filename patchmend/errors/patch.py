# patchmend/errors/patch.py
from __future__ import annotations

from typing import Dict, Sequence


class PatchFailedError(Exception):
    """Base class for every reconciliation failure."""


class FormatError(PatchFailedError):
    """The patch text fails structural validation. Never retried."""


class AnchorError(PatchFailedError):
    """A bare '@@' hunk has no context or removed line found in the file."""


class LocationError(PatchFailedError):
    """Fuzzy search stayed below the acceptance threshold."""


class ApplyError(PatchFailedError):
    """A native or fuzzy application attempt failed."""


class EscalationCancelled(PatchFailedError):
    """The caller abandoned the run between two tiers."""


class ExhaustionError(PatchFailedError):
    """
    Every tier of the escalation ladder failed.

    Carries the files named by the last patch, the last error text of each
    tier (keyed by strategy name) and the manual remediation checklist.
    """

    def __init__(
        self,
        files: Sequence[str],
        tier_errors: Dict[str, str],
        remediation: Sequence[str] = (),
    ):
        self.files = list(files)
        self.tier_errors = dict(tier_errors)
        self.remediation = list(remediation)
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [f"Patch application failed after {len(self.tier_errors)} attempts."]
        lines.append("Files: " + (", ".join(self.files) if self.files else "(none)"))
        for tier, err in self.tier_errors.items():
            lines.append(f"  [{tier}] {err}")
        if self.remediation:
            lines.append("Suggested manual fixes:")
            for i, step in enumerate(self.remediation, 1):
                lines.append(f"  {i}. {step}")
        return "\n".join(lines)
