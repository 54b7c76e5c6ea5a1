# patchmend/commit/locate.py
from __future__ import annotations

from typing import Sequence

from .._logging import resolve_logger
from ..errors import LocationError
from ..models import Hunk, Location

__all__ = ["locate", "match_score", "matches_at", "eq_loose"]


def eq_loose(a: str, b: str) -> bool:
    """Whitespace-insensitive equality for fuzzy/context matching."""
    return a == b or a.strip() == b.strip()


def matches_at(file_lines: Sequence[str], search_lines: Sequence[str], pos: int) -> bool:
    """Exact block match of search_lines starting at pos."""
    if pos < 0 or pos + len(search_lines) > len(file_lines):
        return False
    for i, want in enumerate(search_lines):
        if file_lines[pos + i] != want:
            return False
    return True


def match_score(
    file_lines: Sequence[str],
    search_lines: Sequence[str],
    pos: int,
    *,
    exact_weight: float = 1.0,
    loose_weight: float = 0.8,
) -> float:
    """Sum of per-line scores: exact_weight for identical, loose_weight for trimmed-equal."""
    score = 0.0
    for i, want in enumerate(search_lines):
        if pos + i >= len(file_lines):
            break
        have = file_lines[pos + i]
        if have == want:
            score += exact_weight
        elif have.strip() == want.strip():
            score += loose_weight
    return score


def _clamp(pos: int, n: int) -> int:
    return max(0, min(pos, n))


def locate(
    file_lines: Sequence[str],
    hunk: Hunk,
    *,
    window: int = 50,
    accept_ratio: float = 0.5,
    exact_weight: float = 1.0,
    loose_weight: float = 0.8,
    logger=None,
    log: bool = False,
) -> Location:
    """
    Find the 0-based position at which a hunk's old side best fits the file.

    Tries the declared position first, then scans outward from it one offset
    at a time (below before above), keeping the first strictly better score
    so ties resolve toward the declared position. A perfect score stops the
    scan. A best score under accept_ratio of the block length is rejected in
    favour of the declared position, flagged as not confident.
    """
    log = resolve_logger(logger=logger, enabled=log, name=__name__)
    n = len(file_lines)
    search_lines = hunk.old_lines()
    expected = hunk.old_start - 1

    if not search_lines:
        pos = _clamp(hunk.old_start if hunk.after_line else expected, n)
        log.debug(f"pure addition; inserting at declared position {pos}")
        return Location(position=pos, score=0.0, max_score=0, exact=False, confident=hunk.has_range)

    m = len(search_lines)
    perfect = m * exact_weight

    if matches_at(file_lines, search_lines, expected):
        return Location(position=expected, score=perfect, max_score=m, exact=True, confident=True)

    best_score = -1.0
    best_pos = expected
    for offset in range(0, window + 1):
        for pos in ((expected,) if offset == 0 else (expected - offset, expected + offset)):
            if pos < 0 or pos > n - m:
                continue
            score = match_score(
                file_lines, search_lines, pos,
                exact_weight=exact_weight, loose_weight=loose_weight,
            )
            if score > best_score:
                best_score, best_pos = score, pos
            if score >= perfect:
                log.debug(f"perfect match at {pos} (declared {expected})")
                return Location(position=pos, score=score, max_score=m, exact=True, confident=True)

    if best_score >= m * accept_ratio:
        log.debug(f"fuzzy match at {best_pos} (declared {expected}), score={best_score:.1f}/{m}")
        return Location(position=best_pos, score=best_score, max_score=m, exact=False, confident=True)

    fallback = _clamp(expected, n)
    log.warning(
        str(LocationError(
            f"best score {max(best_score, 0.0):.1f}/{m} below threshold; "
            f"falling back to declared line {fallback + 1}"
        ))
    )
    return Location(position=fallback, score=max(best_score, 0.0), max_score=m, exact=False, confident=False)
