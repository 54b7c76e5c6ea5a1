from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class LineKind(enum.Enum):
    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"


@dataclass(frozen=True)
class HunkLine:
    """One body line of a hunk, without its diff marker."""

    kind: LineKind
    text: str

    @property
    def marker(self) -> str:
        return self.kind.value

    @property
    def in_old(self) -> bool:
        return self.kind is not LineKind.ADDED

    @property
    def in_new(self) -> bool:
        return self.kind is not LineKind.REMOVED


@dataclass(frozen=True)
class Hunk:
    """
    A contiguous block of changes anchored to a position in the old file.

    Counts always equal the tallies of the body: old_count is context+removed,
    new_count is context+added. has_range is False when the header was a bare
    '@@' and the start positions are placeholders.
    """

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: Tuple[HunkLine, ...] = ()
    has_range: bool = True
    # "-N,0" header: the added lines go after old line N rather than before it
    after_line: bool = False

    def old_lines(self) -> List[str]:
        return [ln.text for ln in self.lines if ln.in_old]

    def new_lines(self) -> List[str]:
        return [ln.text for ln in self.lines if ln.in_new]

    @property
    def has_changes(self) -> bool:
        return any(ln.kind is not LineKind.CONTEXT for ln in self.lines)


def tally_counts(lines: Tuple[HunkLine, ...]) -> Tuple[int, int]:
    """Return (old_count, new_count) for a hunk body."""
    old_count = sum(1 for ln in lines if ln.in_old)
    new_count = sum(1 for ln in lines if ln.in_new)
    return old_count, new_count


@dataclass(frozen=True)
class FilePatch:
    """All hunks targeting one repository-relative file, in patch order."""

    file_path: str
    hunks: Tuple[Hunk, ...] = ()
    old_path: Optional[str] = None  # path from the '---' header when it differs
    is_new_file: bool = False       # '--- /dev/null'
    is_deleted_file: bool = False   # '+++ /dev/null'


@dataclass(frozen=True)
class Patch:
    files: Tuple[FilePatch, ...] = ()

    @property
    def file_paths(self) -> List[str]:
        seen: List[str] = []
        for fp in self.files:
            if fp.file_path and fp.file_path not in seen:
                seen.append(fp.file_path)
        return seen

    def __bool__(self) -> bool:
        return any(fp.hunks for fp in self.files)


@dataclass(frozen=True)
class ParseResult:
    """Parser output: a possibly partial patch plus structural complaints."""

    patch: Patch
    problems: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.problems and bool(self.patch)
